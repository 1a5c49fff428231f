# schemas/admin.py
"""
Schemas for admin provisioning.

The create-user body is accepted as loosely typed fields and validated in
the provisioning service, so that every malformed input yields the same
generic error.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class CreateUserRequest(BaseModel):
     email: Any = None
     company_id: Any = None
     role: Optional[Any] = None

     model_config = ConfigDict(
          extra="ignore",
          json_schema_extra={
               "example": {
                    "email": "new@example.com",
                    "company_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                    "role": "member"
               }
          }
     )


class CreateUserResponse(BaseModel):
     success: bool = True
