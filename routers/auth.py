# routers/auth.py
"""
Session routes: first-login role assignment, login and logout.

POST /api/assign-role - give a role-less caller the `partner` role
POST /api/login       - password sign-in; sets the session cookie
POST /api/logout      - clears the session cookie
POST /api/forgot-password - email a password-reset link (same answer either way)
"""
import logging

from fastapi import APIRouter, Depends, Response

from config import get_settings
from dependencies import get_identity_service, get_optional_principal, get_rate_limiter, rate_limited
from exceptions import PortalError, Unauthenticated, UpstreamError, UpstreamTimeout, ValidationError
from schemas.auth import (
     AssignRoleResponse,
     ForgotPasswordRequest,
     ForgotPasswordResponse,
     LoginRequest,
     LoginResponse,
     Principal,
)
from services.authorization import Action, ensure_allowed
from services.identity_service import IdentityService, IdentityServiceError, principal_from_user
from services.rate_limiter import RateLimiter
from services.role_service import resolve_or_assign_role
from utils.security_log import log_auth_attempt, mask_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password. Please check your credentials and try again."
EMAIL_NOT_CONFIRMED = (
     "Please confirm your email address before logging in. Check your inbox for a confirmation link."
)
CONNECTION_PROBLEM = "Connection couldn't be made. Please check your internet connection and try again."
LOGIN_TIMEOUT = "Login request timed out. Please check your internet connection and try again."
LOGIN_FAILED = "Login failed. Please try again."

INVALID_EMAIL = "Please enter a valid email address."
RESET_LINK_SENT = "If an account exists with this email, you will receive a password reset link shortly."
RESET_CONNECTION_PROBLEM = (
     "Connection couldn't be made to database. Please check your internet connection and try again."
)


def login_error(exc: PortalError) -> PortalError:
     """User-facing error for a failed sign-in. Upstream text is never echoed."""
     if isinstance(exc, UpstreamTimeout):
          return UpstreamTimeout(LOGIN_TIMEOUT, detail=exc.detail)
     if isinstance(exc, IdentityServiceError):
          text = (exc.detail or "").lower()
          if exc.code == "invalid_credentials" or "invalid login credentials" in text:
               return Unauthenticated(INVALID_CREDENTIALS, detail=exc.detail)
          if exc.code == "email_not_confirmed" or "email not confirmed" in text:
               return Unauthenticated(EMAIL_NOT_CONFIRMED, detail=exc.detail)
          if exc.status >= 500:
               return UpstreamError(CONNECTION_PROBLEM, detail=exc.detail)
          return Unauthenticated(LOGIN_FAILED, detail=exc.detail)
     if isinstance(exc, UpstreamError):
          return UpstreamError(CONNECTION_PROBLEM, detail=exc.detail)
     return Unauthenticated(LOGIN_FAILED, detail=exc.detail)


@router.post("/assign-role", response_model=AssignRoleResponse)
def assign_role(
     principal: Principal = Depends(get_optional_principal),
     identity: IdentityService = Depends(get_identity_service),
):
     """
     Assign the partner role on first login.

     A caller that already has a role gets it back unchanged with action
     `verified` (partner) or `rejected` (any other role).
     """
     principal = ensure_allowed(principal, Action.ASSIGN_ROLE)
     assignment = resolve_or_assign_role(identity, principal)
     return AssignRoleResponse(role=assignment.role.value, action=assignment.action)


@router.post("/login", response_model=LoginResponse)
def login(
     body: LoginRequest,
     response: Response,
     client_id: str = Depends(rate_limited("login")),
     identity: IdentityService = Depends(get_identity_service),
     limiter: RateLimiter = Depends(get_rate_limiter),
):
     email = body.email.strip().lower()
     try:
          session = identity.sign_in(email, body.password)
     except PortalError as exc:
          error = login_error(exc)
          limiter.record_failure("login", client_id)
          log_auth_attempt(client_id, email, success=False, reason=error.message)
          logger.info("Login failed: %s", exc.detail or exc.message)
          raise error from exc

     token = session.get("access_token")
     user = session.get("user")
     if not token or not user:
          limiter.record_failure("login", client_id)
          log_auth_attempt(client_id, email, success=False, reason="no session")
          raise Unauthenticated("No session created. Please try again.")

     principal = principal_from_user(user)
     settings = get_settings()
     response.set_cookie(
          key=settings.SESSION_COOKIE_NAME,
          value=token,
          max_age=int(session.get("expires_in") or 3600),
          httponly=True,
          secure=settings.SESSION_COOKIE_SECURE,
          samesite="lax",
     )
     log_auth_attempt(client_id, email, success=True)
     return LoginResponse(user_id=principal.id, role=principal.role.claim)


@router.post("/logout")
def logout(response: Response):
     settings = get_settings()
     response.delete_cookie(
          key=settings.SESSION_COOKIE_NAME,
          httponly=True,
          secure=settings.SESSION_COOKIE_SECURE,
          samesite="lax",
     )
     return {"success": True}


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
def forgot_password(
     body: ForgotPasswordRequest,
     client_id: str = Depends(rate_limited("password_reset")),
     identity: IdentityService = Depends(get_identity_service),
):
     """
     Send a reset link through the auth server.

     Known and unknown addresses get the same response; only a failure to
     reach the auth server is reported.
     """
     email = body.email.strip().lower()
     if "@" not in email:
          raise ValidationError(INVALID_EMAIL)

     try:
          identity.send_password_reset(email, redirect_to=f"{get_settings().SITE_URL}/auth/callback")
     except IdentityServiceError as exc:
          logger.info("Password reset not sent for %s (client %s): %s", mask_email(email), client_id, exc.detail)
     except UpstreamError as exc:
          logger.warning("Password reset request failed: %s", exc.detail)
          raise UpstreamError(RESET_CONNECTION_PROBLEM, detail=exc.detail) from exc

     return ForgotPasswordResponse(message=RESET_LINK_SENT)
