# dependencies.py
"""
Shared FastAPI dependencies: collaborators, the session principal and
rate limiting.

Collaborators are built once per process and can be swapped in tests via
`app.dependency_overrides`.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from jose import JWTError, jwt

from azure_blob import InvoiceStorage
from config import get_settings
from database import SessionLocal
from exceptions import PortalError, RateLimited, Unauthenticated
from schemas.auth import Principal
from services.identity_service import IdentityService
from services.rate_limiter import (
     DatabaseCounterStore,
     InMemoryCounterStore,
     RateLimiter,
     client_id_from_request,
)
from utils.security_log import log_security_event

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_identity_service() -> IdentityService:
     return IdentityService.from_settings()


@lru_cache(maxsize=1)
def get_invoice_storage() -> InvoiceStorage:
     return InvoiceStorage.from_settings()


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
     if get_settings().RATE_LIMIT_BACKEND == "memory":
          logger.warning("Using in-memory rate limiting; counts are not shared between processes")
          return RateLimiter(InMemoryCounterStore())
     return RateLimiter(DatabaseCounterStore(SessionLocal))


def extract_token(request: Request) -> Optional[str]:
     """Session token from the cookie, else from `Authorization: Bearer`."""
     token = request.cookies.get(get_settings().SESSION_COOKIE_NAME)
     if token:
          return token
     auth = request.headers.get("Authorization")
     if auth and auth.startswith("Bearer "):
          return auth.split(" ", 1)[1].strip() or None
     return None


def decode_token(token: str) -> Dict[str, Any]:
     """
     Check signature and expiry locally. Returns the claims, or {} when no
     JWT secret is configured (the identity service still validates).
     """
     settings = get_settings()
     if not settings.JWT_SECRET:
          return {}
     options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
     try:
          return jwt.decode(
               token,
               settings.JWT_SECRET,
               algorithms=[settings.JWT_ALGORITHM],
               audience=settings.JWT_AUDIENCE,
               options=options,
          )
     except JWTError as exc:
          raise Unauthenticated(detail=str(exc)) from exc


def get_current_principal(
     request: Request,
     identity: IdentityService = Depends(get_identity_service),
) -> Principal:
     """
     Resolve the caller from the session token.

     The token is always re-validated with the identity service, and the
     role comes only from its answer. Any failure is Unauthenticated.
     """
     token = extract_token(request)
     if not token:
          raise Unauthenticated()

     claims = decode_token(token)
     try:
          principal = identity.get_user(token)
     except PortalError as exc:
          logger.info("Session rejected by identity service: %s", exc.detail or exc.message)
          raise Unauthenticated() from exc

     subject = claims.get("sub")
     if subject and subject != principal.id:
          log_security_event(
               "suspicious_activity",
               client_id_from_request(request),
               user_id=principal.id,
               details={"reason": "token subject mismatch"},
          )
          raise Unauthenticated()
     return principal


def get_optional_principal(
     request: Request,
     identity: IdentityService = Depends(get_identity_service),
) -> Optional[Principal]:
     """Like get_current_principal, but None instead of raising; the gate decides."""
     try:
          return get_current_principal(request, identity)
     except Unauthenticated:
          return None


def rate_limited(endpoint: str):
     """Dependency that counts the request against `endpoint` and rejects when over."""

     def check_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> str:
          client_id = client_id_from_request(request)
          result = limiter.check(endpoint, client_id)
          if not result.allowed:
               raise RateLimited()
          return client_id

     return check_rate_limit
