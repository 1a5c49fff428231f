# schemas/__init__.py
from .auth import (
     Role,
     Principal,
     RoleAssignmentAction,
     AssignRoleResponse,
     LoginRequest,
     LoginResponse,
     ForgotPasswordRequest,
     ForgotPasswordResponse,
)
from .company import (
     CompanyProfileUpdate,
     CompanyResponse,
     CompanyEnvelope,
     CompanyListItem,
     CompanyListResponse,
)
from .payout import (
     PayoutRequestResponse,
     PayoutListResponse,
     PayoutCreatedResponse,
     BalanceResponse,
     SignedUrlResponse,
)
from .admin import CreateUserRequest, CreateUserResponse

__all__ = [
     "Role",
     "Principal",
     "RoleAssignmentAction",
     "AssignRoleResponse",
     "LoginRequest",
     "LoginResponse",
     "ForgotPasswordRequest",
     "ForgotPasswordResponse",
     "CompanyProfileUpdate",
     "CompanyResponse",
     "CompanyEnvelope",
     "CompanyListItem",
     "CompanyListResponse",
     "PayoutRequestResponse",
     "PayoutListResponse",
     "PayoutCreatedResponse",
     "BalanceResponse",
     "SignedUrlResponse",
     "CreateUserRequest",
     "CreateUserResponse",
]
