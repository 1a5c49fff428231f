# utils/security_log.py
"""
Security event logging.

Events are written as one JSON object per line on the `security` logger.
Values under sensitive keys are redacted and long strings are truncated.
"""
import json
import logging
import time
from typing import Any, Dict, Optional

logger = logging.getLogger("security")

SENSITIVE_KEYS = ("password", "token", "secret", "key", "auth", "credential")
MAX_VALUE_LENGTH = 100

EVENT_TYPES = {
     "login_attempt",
     "login_success",
     "login_failure",
     "rate_limit_exceeded",
     "access_denied",
     "suspicious_activity",
}


def _sanitize_details(details: Dict[str, Any]) -> Dict[str, Any]:
     sanitized: Dict[str, Any] = {}
     for key, value in details.items():
          if any(marker in key.lower() for marker in SENSITIVE_KEYS):
               sanitized[key] = "[REDACTED]"
          elif isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
               sanitized[key] = value[:MAX_VALUE_LENGTH] + "..."
          else:
               sanitized[key] = value
     return sanitized


def mask_email(email: Optional[str]) -> str:
     if not email:
          return ""
     return email[:3] + "***@***"


def log_security_event(
     event_type: str,
     client_id: str,
     user_id: Optional[str] = None,
     details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
     if event_type not in EVENT_TYPES:
          raise ValueError(f"Unknown security event type: {event_type}")

     event = {
          "type": event_type,
          "timestamp": int(time.time() * 1000),
          "clientId": client_id,
          "userId": user_id,
          "details": _sanitize_details(details) if details else None,
     }
     level = logging.INFO if event_type in ("login_attempt", "login_success") else logging.WARNING
     logger.log(level, json.dumps(event, default=str))
     return event


def log_auth_attempt(client_id: str, email: str, success: bool, reason: Optional[str] = None) -> None:
     log_security_event(
          "login_success" if success else "login_failure",
          client_id,
          details={"email": mask_email(email), "reason": reason},
     )
