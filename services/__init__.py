# services/__init__.py
from .identity_service import IdentityService, IdentityServiceError
from .authorization import Action, Decision, authorize, ensure_allowed
from .role_service import RoleAssignment, resolve_or_assign_role
from .company_service import (
     FIELD_WRITE_POLICY,
     WritePolicy,
     get_user_company_id,
     get_company_for_user,
     resolve_or_create_company,
     update_company_profile,
     company_has_minimal_data,
)
from .payout_service import (
     InvoiceUpload,
     read_invoice_upload,
     create_payout_from_balance,
     submit_payout_from_balance,
     list_payout_requests,
     get_balance,
)
from .provisioning_service import create_partner_user, list_companies
from .rate_limiter import (
     RATE_LIMITS,
     RateLimiter,
     InMemoryCounterStore,
     DatabaseCounterStore,
     client_id_from_request,
)

__all__ = [
     "IdentityService",
     "IdentityServiceError",
     "Action",
     "Decision",
     "authorize",
     "ensure_allowed",
     "RoleAssignment",
     "resolve_or_assign_role",
     "FIELD_WRITE_POLICY",
     "WritePolicy",
     "get_user_company_id",
     "get_company_for_user",
     "resolve_or_create_company",
     "update_company_profile",
     "company_has_minimal_data",
     "InvoiceUpload",
     "read_invoice_upload",
     "create_payout_from_balance",
     "submit_payout_from_balance",
     "list_payout_requests",
     "get_balance",
     "create_partner_user",
     "list_companies",
     "RATE_LIMITS",
     "RateLimiter",
     "InMemoryCounterStore",
     "DatabaseCounterStore",
     "client_id_from_request",
]
