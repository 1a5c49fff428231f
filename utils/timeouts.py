# utils/timeouts.py
"""
Timeouts (seconds) per class of remote operation.

HTTP calls pass these to `requests`, blob calls to the Azure SDK, and the
database enforces `statement_timeout` on every connection.
"""
TIMEOUTS = {
     "login": 8,
     "auth_check": 5,
     "password_reset": 10,
     "query": 20,
     "insert": 30,
     "update": 30,
     "delete": 20,
     "upload": 60,
     "default": 30,
}


def timeout_for(operation: str) -> int:
     return TIMEOUTS.get(operation, TIMEOUTS["default"])
