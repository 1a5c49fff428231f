# services/identity_service.py
"""
Identity Service client - the hosted auth server that owns user accounts.

Two privilege levels are exposed:
- session calls (`get_user`, `sign_in`) authenticated with the public key
  and the caller's own access token;
- admin calls (`get_user_by_id`, `set_role_claim`, `invite_user`,
  `delete_user`) authenticated with the service-role key. These must only
  be reached from code paths already gated to admins or to the caller's
  own id.

The role claim lives in the identity's `app_metadata.role` and is parsed
into `Role` immediately.
"""
import logging
from typing import Any, Dict, Optional

import requests

from config import Settings, get_settings
from exceptions import UpstreamError, UpstreamTimeout
from schemas.auth import Principal, Role
from utils.timeouts import timeout_for

logger = logging.getLogger(__name__)


class IdentityServiceError(UpstreamError):
     """Non-2xx response from the auth server. `code` is the server's error code."""

     def __init__(self, status: int, code: Optional[str], detail: Optional[str]):
          super().__init__(detail=detail)
          self.status = status
          self.code = code


def principal_from_user(user: Dict[str, Any]) -> Principal:
     app_metadata = user.get("app_metadata") or {}
     return Principal(
          id=str(user["id"]),
          email=user.get("email"),
          role=Role.parse(app_metadata.get("role")),
     )


class IdentityService:
     """Thin `requests` client for a GoTrue-compatible auth API."""

     def __init__(
          self,
          base_url: str,
          anon_key: Optional[str] = None,
          service_role_key: Optional[str] = None,
          session: Optional[requests.Session] = None,
     ):
          self.base_url = base_url.rstrip("/")
          self.anon_key = anon_key
          self.service_role_key = service_role_key
          self.http = session or requests.Session()

     @classmethod
     def from_settings(cls, settings: Optional[Settings] = None) -> "IdentityService":
          settings = settings or get_settings()
          if not settings.AUTH_URL:
               raise RuntimeError("Missing AUTH_URL environment variable")
          return cls(
               settings.AUTH_URL,
               anon_key=settings.AUTH_ANON_KEY,
               service_role_key=settings.AUTH_SERVICE_ROLE_KEY,
          )

     # ------------------------------------------------------------------
     # Transport
     # ------------------------------------------------------------------

     def _session_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
          headers = {"Content-Type": "application/json"}
          if self.anon_key:
               headers["apikey"] = self.anon_key
          if access_token:
               headers["Authorization"] = f"Bearer {access_token}"
          return headers

     def _admin_headers(self) -> Dict[str, str]:
          if not self.service_role_key:
               raise RuntimeError(
                    "Missing AUTH_SERVICE_ROLE_KEY environment variable. "
                    "It is required for admin operations such as role assignment."
               )
          return {
               "Content-Type": "application/json",
               "apikey": self.service_role_key,
               "Authorization": f"Bearer {self.service_role_key}",
          }

     def _request(
          self,
          method: str,
          path: str,
          headers: Dict[str, str],
          operation: str,
          json: Optional[Dict[str, Any]] = None,
          params: Optional[Dict[str, str]] = None,
     ) -> Dict[str, Any]:
          url = f"{self.base_url}{path}"
          try:
               response = self.http.request(
                    method,
                    url,
                    headers=headers,
                    json=json,
                    params=params,
                    timeout=timeout_for(operation),
               )
          except requests.Timeout as exc:
               raise UpstreamTimeout(detail=f"{method} {path}: {exc}") from exc
          except requests.RequestException as exc:
               raise UpstreamError(detail=f"{method} {path}: {exc}") from exc

          if response.status_code >= 400:
               try:
                    body = response.json()
               except ValueError:
                    body = {}
               code = body.get("error_code") or body.get("code") or body.get("error")
               message = body.get("msg") or body.get("message") or body.get("error_description") or response.text
               raise IdentityServiceError(response.status_code, str(code) if code else None, message)

          if not response.content:
               return {}
          return response.json()

     # ------------------------------------------------------------------
     # Session calls
     # ------------------------------------------------------------------

     def get_user(self, access_token: str) -> Principal:
          """Validate `access_token` with the auth server and return its owner."""
          data = self._request("GET", "/auth/v1/user", self._session_headers(access_token), "auth_check")
          return principal_from_user(data)

     def sign_in(self, email: str, password: str) -> Dict[str, Any]:
          """Password grant. Returns the raw session (`access_token`, `user`, ...)."""
          return self._request(
               "POST",
               "/auth/v1/token",
               self._session_headers(),
               "login",
               json={"email": email, "password": password},
               params={"grant_type": "password"},
          )

     def send_password_reset(self, email: str, redirect_to: Optional[str] = None) -> None:
          """Ask the auth server to email a reset link. The answer never says whether the account exists."""
          self._request(
               "POST",
               "/auth/v1/recover",
               self._session_headers(),
               "password_reset",
               json={"email": email},
               params={"redirect_to": redirect_to} if redirect_to else None,
          )

     # ------------------------------------------------------------------
     # Admin calls
     # ------------------------------------------------------------------

     def get_user_by_id(self, user_id: str) -> Principal:
          data = self._request("GET", f"/auth/v1/admin/users/{user_id}", self._admin_headers(), "auth_check")
          return principal_from_user(data)

     def set_role_claim(self, user_id: str, role: Role) -> Principal:
          data = self._request(
               "PUT",
               f"/auth/v1/admin/users/{user_id}",
               self._admin_headers(),
               "update",
               json={"app_metadata": {"role": role.claim}},
          )
          return principal_from_user(data)

     def invite_user(self, email: str) -> Principal:
          """Create the account and send the password-setup email."""
          data = self._request("POST", "/auth/v1/invite", self._admin_headers(), "insert", json={"email": email})
          return principal_from_user(data)

     def delete_user(self, user_id: str) -> None:
          self._request("DELETE", f"/auth/v1/admin/users/{user_id}", self._admin_headers(), "delete")
