# services/role_service.py
"""
Role assignment on first login.

An identity without a role claim is promoted to `partner` exactly once.
Existing claims are reported, never changed; `admin` is never assigned here.
"""
import logging
from dataclasses import dataclass

from exceptions import InternalVerificationFailure, PortalError, RoleAssignmentFailed, UpstreamTimeout
from schemas.auth import Principal, Role, RoleAssignmentAction
from services.identity_service import IdentityService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleAssignment:
     role: Role
     action: RoleAssignmentAction


def resolve_or_assign_role(identity: IdentityService, principal: Principal) -> RoleAssignment:
     """
     Return the principal's role, assigning `partner` if it has none.

     After the admin update the identity is re-read by id; the write only
     counts if the re-read shows `partner`. Safe to call twice: the second
     call sees a non-null role and returns early.
     """
     if principal.role is not Role.UNSET:
          action = RoleAssignmentAction.VERIFIED if principal.role is Role.PARTNER else RoleAssignmentAction.REJECTED
          return RoleAssignment(principal.role, action)

     try:
          identity.set_role_claim(principal.id, Role.PARTNER)
     except UpstreamTimeout:
          raise
     except PortalError as exc:
          logger.error("Failed to assign partner role: user=%s error=%s", principal.id, exc.detail or exc.message)
          raise RoleAssignmentFailed(detail=exc.detail) from exc

     updated = identity.get_user_by_id(principal.id)
     if updated.role is not Role.PARTNER:
          logger.error(
               "Role assignment verification failed: user=%s expected=partner actual=%s",
               principal.id,
               updated.role.value,
          )
          raise InternalVerificationFailure("Role assignment verification failed")

     logger.info("Assigned partner role to user=%s", principal.id)
     return RoleAssignment(Role.PARTNER, RoleAssignmentAction.ASSIGNED)
