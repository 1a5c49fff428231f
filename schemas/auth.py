# schemas/auth.py
"""
Identity-side types: the role claim and the authenticated principal.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
     """
     Role claim stored on the identity record.

     The identity service stores the claim as an untyped string; it is
     converted here, once, on read. A missing or empty claim is UNSET;
     any other unrecognised value (e.g. a marketplace `customer`) is OTHER
     and must never be overwritten.
     """
     UNSET = "unset"
     PARTNER = "partner"
     ADMIN = "admin"
     OTHER = "other"

     @classmethod
     def parse(cls, raw: Any) -> "Role":
          if raw is None or (isinstance(raw, str) and not raw.strip()):
               return cls.UNSET
          if raw == cls.PARTNER.value:
               return cls.PARTNER
          if raw == cls.ADMIN.value:
               return cls.ADMIN
          return cls.OTHER

     @property
     def claim(self) -> Optional[str]:
          """Value as written to the identity service (None for UNSET)."""
          return None if self is Role.UNSET else self.value


class Principal(BaseModel):
     """An authenticated caller, always derived from a validated session."""
     id: str
     email: Optional[str] = None
     role: Role = Role.UNSET

     model_config = ConfigDict(frozen=True)


class RoleAssignmentAction(str, Enum):
     ASSIGNED = "assigned"
     VERIFIED = "verified"
     REJECTED = "rejected"


class AssignRoleResponse(BaseModel):
     """Response for POST /api/assign-role."""
     success: bool = True
     role: str
     action: RoleAssignmentAction

     model_config = ConfigDict(
          json_schema_extra={
               "example": {"success": True, "role": "partner", "action": "assigned"}
          }
     )


class LoginRequest(BaseModel):
     email: str = Field(..., min_length=3, max_length=255)
     password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
     success: bool = True
     user_id: str
     role: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
     email: str = Field(..., max_length=255)


class ForgotPasswordResponse(BaseModel):
     success: bool = True
     message: str
