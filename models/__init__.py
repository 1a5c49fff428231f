# models/__init__.py
from .base import Base
from .company import Company, VerificationStatus
from .company_member import CompanyMember, CompanyMemberRole
from .car import Car
from .payout_request import PayoutRequest, PayoutStatus
from .rate_limit_counter import RateLimitCounter, RateLimitBlock

__all__ = [
     "Base",
     "Company",
     "VerificationStatus",
     "CompanyMember",
     "CompanyMemberRole",
     "Car",
     "PayoutRequest",
     "PayoutStatus",
     "RateLimitCounter",
     "RateLimitBlock",
]
