# services/authorization.py
"""
Authorization gate consulted before every mutating or sensitive read.

`authorize` is a pure decision function; `ensure_allowed` turns a denial
into the matching exception and logs it. Denial is the default: a missing
principal, a missing resource owner or an unknown role never allows.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from exceptions import Forbidden, Unauthenticated
from schemas.auth import Principal, Role

logger = logging.getLogger(__name__)


class Action(Enum):
     """Entry points guarded by the gate: (name, requires_admin, requires_ownership)."""
     ASSIGN_ROLE = ("assign_role", False, False)
     CREATE_PARTNER_USER = ("create_partner_user", True, False)
     LIST_COMPANIES = ("list_companies", True, False)
     VIEW_COMPANY = ("view_company", False, True)
     UPDATE_COMPANY = ("update_company", False, True)
     VIEW_BALANCE = ("view_balance", False, True)
     CREATE_PAYOUT = ("create_payout", False, True)
     LIST_PAYOUTS = ("list_payouts", False, True)
     READ_INVOICE = ("read_invoice", False, True)

     def __init__(self, label: str, requires_admin: bool, requires_ownership: bool):
          self.label = label
          self.requires_admin = requires_admin
          self.requires_ownership = requires_ownership


UNAUTHENTICATED = "unauthenticated"
FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Decision:
     allowed: bool
     reason: Optional[str] = None


ALLOW = Decision(True)


def authorize(
     principal: Optional[Principal],
     action: Action,
     resource_owner_id: Optional[str] = None,
) -> Decision:
     """
     Decide whether `principal` may perform `action`.

     Rules, first match wins:
     1. no principal -> deny (unauthenticated)
     2. admin action and role is not admin -> deny (forbidden)
     3. ownership action and the resource owner is not the principal -> deny (forbidden)
     4. allow
     """
     if principal is None:
          return Decision(False, UNAUTHENTICATED)
     if action.requires_admin and principal.role is not Role.ADMIN:
          return Decision(False, FORBIDDEN)
     if action.requires_ownership and (not resource_owner_id or resource_owner_id != principal.id):
          return Decision(False, FORBIDDEN)
     return ALLOW


def ensure_allowed(
     principal: Optional[Principal],
     action: Action,
     resource_owner_id: Optional[str] = None,
) -> Principal:
     """Raise on deny; return the principal on allow."""
     decision = authorize(principal, action, resource_owner_id)
     if decision.allowed:
          return principal

     logger.warning(
          "Denied %s for user=%s reason=%s",
          action.label,
          principal.id if principal else None,
          decision.reason,
     )
     if decision.reason == UNAUTHENTICATED:
          raise Unauthenticated()
     raise Forbidden()


def require_principal(principal: Optional[Principal]) -> Principal:
     """First half of the gate, for routes that must load the resource before the ownership check."""
     if principal is None:
          raise Unauthenticated()
     return principal
