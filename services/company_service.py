# services/company_service.py
"""
Company Service - resolves the one company a partner owns.

`resolve_or_create_company` is a get-or-create without locks. Two first
calls for the same user may both miss the lookup; the unique constraint
on `companies.owner_id` makes the second insert fail, after which the
loser re-reads and returns the winner's company.
"""
import enum
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exceptions import ConflictAlreadyExists, ValidationError
from models import Car, Company, CompanyMember, CompanyMemberRole, VerificationStatus
from schemas.company import CompanyProfileUpdate

logger = logging.getLogger(__name__)


class WritePolicy(enum.Enum):
     OVERWRITE = "overwrite"
     ONLY_IF_NULL = "only_if_null"


# Fields not listed here are overwritten on every profile save.
FIELD_WRITE_POLICY: Dict[str, WritePolicy] = {
     "phone": WritePolicy.ONLY_IF_NULL,
     "owner_id": WritePolicy.ONLY_IF_NULL,
}

DEFAULT_COMPANY_SETTINGS = {
     "timezone": "UTC",
     "currency": "USD",
     "language": "en",
}


def _is_unset(value: Any) -> bool:
     return value is None or (isinstance(value, str) and not value.strip())


def apply_field_policy(company: Company, updates: Dict[str, Any]) -> Dict[str, Any]:
     """
     Copy `updates` onto `company`, honouring FIELD_WRITE_POLICY.

     Returns the fields that were actually written.
     """
     written: Dict[str, Any] = {}
     for field, value in updates.items():
          policy = FIELD_WRITE_POLICY.get(field, WritePolicy.OVERWRITE)
          if policy is WritePolicy.ONLY_IF_NULL and not _is_unset(getattr(company, field)):
               continue
          setattr(company, field, value)
          written[field] = value
     return written


def placeholder_company_name(user_id: str, user_email: Optional[str] = None) -> str:
     if user_email:
          return f"Company for {user_email.split('@')[0]}"
     return f"Company for User {user_id[:8]}"


def get_user_company_id(db: Session, user_id: Optional[str]) -> Optional[str]:
     """Company id owned by `user_id`, or None."""
     if not user_id:
          return None
     row = db.query(Company.id).filter(Company.owner_id == user_id).limit(1).first()
     return row[0] if row else None


def get_company_for_user(db: Session, user_id: str) -> Optional[Company]:
     return db.query(Company).filter(Company.owner_id == user_id).first()


def _legacy_company_id(db: Session, user_id: str) -> Optional[str]:
     """
     Deprecated: companies linked through an owner membership or a car.

     Only historical rows reach this path. A company found here with no
     owner is claimed by `user_id`; companies owned by someone else are
     ignored.
     """
     candidates = []
     member = (
          db.query(CompanyMember.company_id)
          .filter(
               CompanyMember.user_id == user_id,
               CompanyMember.role == CompanyMemberRole.OWNER,
               CompanyMember.is_active.is_(True),
          )
          .first()
     )
     if member:
          candidates.append(member[0])
     car = (
          db.query(Car.company_id)
          .filter(Car.owner_id == user_id, Car.company_id.isnot(None))
          .first()
     )
     if car:
          candidates.append(car[0])

     for company_id in candidates:
          company = db.query(Company).filter(Company.id == company_id).first()
          if company is None:
               continue
          if company.owner_id == user_id:
               return company.id
          if company.owner_id is not None:
               continue
          logger.warning("Legacy company linkage used: user=%s company=%s", user_id, company.id)
          try:
               with db.begin_nested():
                    claimed = (
                         db.query(Company)
                         .filter(Company.id == company.id, Company.owner_id.is_(None))
                         .update({Company.owner_id: user_id}, synchronize_session="fetch")
                    )
          except IntegrityError:
               # The user acquired a company concurrently.
               return get_user_company_id(db, user_id)
          if claimed:
               return company.id
     return None


def _create_company(db: Session, user_id: str, user_email: Optional[str]) -> str:
     name = placeholder_company_name(user_id, user_email)
     company = Company(
          name=name,
          legal_name=name,
          email=user_email or None,
          owner_id=user_id,
          verification_status=VerificationStatus.PENDING,
          **DEFAULT_COMPANY_SETTINGS,
     )
     try:
          with db.begin_nested():
               db.add(company)
               db.flush()
     except IntegrityError:
          existing = get_user_company_id(db, user_id)
          if existing:
               logger.info("Lost company creation race for user=%s, using %s", user_id, existing)
               return existing
          raise ConflictAlreadyExists("Company could not be created")

     logger.info("Created company %s for user=%s", company.id, user_id)
     return company.id


def resolve_or_create_company(db: Session, user_id: str, user_email: Optional[str] = None) -> str:
     """
     Return the id of the company owned by `user_id`, creating one if needed.

     Order: owner lookup, legacy linkage, create with placeholder name.
     """
     if not user_id:
          raise ValidationError("User id is required")

     company_id = get_user_company_id(db, user_id)
     if company_id:
          return company_id

     company_id = _legacy_company_id(db, user_id)
     if company_id:
          return company_id

     return _create_company(db, user_id, user_email)


def update_company_profile(
     db: Session,
     user_id: str,
     user_email: Optional[str],
     data: CompanyProfileUpdate,
) -> Company:
     """
     Save the profile form onto the caller's company (created on first save).

     Only fields present in the request are written; omitted optional
     fields keep their stored values.
     """
     fields = data.model_dump(exclude_unset=True)
     if any(_is_unset(fields.get(name)) for name in ("name", "email", "phone")):
          raise ValidationError("Please fill in all required fields")

     company_id = resolve_or_create_company(db, user_id, user_email)
     company = db.query(Company).filter(Company.id == company_id).first()

     updates = {key: (value.strip() if isinstance(value, str) else value) for key, value in fields.items()}
     updates["legal_name"] = updates["name"]
     apply_field_policy(company, updates)
     db.flush()
     return company


def company_has_minimal_data(company: Optional[Company]) -> bool:
     return bool(company and company.has_minimal_data)
