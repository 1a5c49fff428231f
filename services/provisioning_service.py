# services/provisioning_service.py
"""
Admin provisioning - invite a partner user into an existing company.

The identity service and the database share no transaction, so creation
is two-phase: create the identity, then link it with a CompanyMember row.
If linking fails the identity is deleted again. The outcome of that delete
is only logged; the caller always sees the original failure.

Every failure surfaces as the same generic message, so the response never
reveals which field was wrong or whether the email already has an account.
"""
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exceptions import PortalError, ProvisioningFailed, ValidationError
from models import Company, CompanyMember, CompanyMemberRole
from schemas.auth import Principal, Role
from services.identity_service import IdentityService

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Unable to create user. Please check inputs or permissions."

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 255


@dataclass(frozen=True)
class CompensationOutcome:
     """Result of undoing an identity creation. Logged, never returned to the caller."""
     user_id: str
     deleted: bool
     error: Optional[str] = None


def is_valid_email(value: Any) -> bool:
     if not isinstance(value, str):
          return False
     trimmed = value.strip()
     return 0 < len(trimmed) <= MAX_EMAIL_LENGTH and bool(EMAIL_PATTERN.match(trimmed))


def is_valid_uuid(value: Any) -> bool:
     if not isinstance(value, str):
          return False
     try:
          return str(uuid.UUID(value)) == value.lower()
     except ValueError:
          return False


def to_member_role(value: Any) -> CompanyMemberRole:
     """`owner` and `admin` are kept; anything else becomes `member`."""
     if value in (CompanyMemberRole.OWNER.value, CompanyMemberRole.ADMIN.value):
          return CompanyMemberRole(value)
     return CompanyMemberRole.MEMBER


def _compensate(identity: IdentityService, user_id: str) -> CompensationOutcome:
     try:
          identity.delete_user(user_id)
     except Exception as exc:
          outcome = CompensationOutcome(user_id, deleted=False, error=str(exc))
          logger.error("Rollback failed: could not delete invited user=%s: %s", user_id, exc)
          return outcome
     logger.info("Rollback: deleted invited user=%s", user_id)
     return CompensationOutcome(user_id, deleted=True)


def create_partner_user(
     db: Session,
     identity: IdentityService,
     email: Any,
     company_id: Any,
     member_role: Any = None,
) -> Principal:
     """
     Invite `email` as a partner and link it to `company_id`.

     Callers must already have passed the admin gate.

     Raises:
          ValidationError: malformed input, unknown company, or the invite was refused
          ProvisioningFailed: the identity was created but could not be linked
     """
     if not is_valid_email(email) or not is_valid_uuid(company_id):
          raise ValidationError(GENERIC_ERROR)

     email = email.strip().lower()
     role = to_member_role(member_role)

     company = db.query(Company.id).filter(Company.id == company_id).first()
     if company is None:
          raise ValidationError(GENERIC_ERROR)

     try:
          invited = identity.invite_user(email)
     except PortalError as exc:
          logger.error("Invite failed: %s", exc.detail or exc.message)
          raise ValidationError(GENERIC_ERROR) from exc

     try:
          identity.set_role_claim(invited.id, Role.PARTNER)
          db.add(
               CompanyMember(
                    company_id=company_id,
                    user_id=invited.id,
                    role=role,
                    is_active=True,
               )
          )
          db.commit()
     except (PortalError, SQLAlchemyError) as exc:
          db.rollback()
          logger.error("Linking invited user=%s to company=%s failed: %s", invited.id, company_id, exc)
          _compensate(identity, invited.id)
          raise ProvisioningFailed(GENERIC_ERROR) from exc

     logger.info("Provisioned user=%s into company=%s as %s", invited.id, company_id, role.value)
     return invited


def list_companies(db: Session) -> List[Tuple[str, str]]:
     """(id, name) pairs for the admin dropdown, ordered by name."""
     return db.query(Company.id, Company.name).order_by(Company.name).all()
