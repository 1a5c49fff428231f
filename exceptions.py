# exceptions.py
"""
Error taxonomy for the owner portal.

Every error carries a user-safe message and the HTTP status it maps to.
Raw upstream text must never be placed in `message`; keep it in `detail`,
which is only logged.
"""
from typing import Optional


class PortalError(Exception):
     """Base class for errors that are rendered to the caller."""

     status_code: int = 500
     default_message: str = "Internal server error"

     def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
          self.message = message or self.default_message
          self.detail = detail
          super().__init__(self.message)


class Unauthenticated(PortalError):
     status_code = 401
     default_message = "Unauthorized"


class Forbidden(PortalError):
     status_code = 403
     default_message = "Forbidden"


class ValidationError(PortalError):
     """Malformed input, detected before any remote call."""
     status_code = 400
     default_message = "Invalid request"


class InvalidFile(ValidationError):
     default_message = "Invalid file"


class NotFound(PortalError):
     status_code = 404
     default_message = "Not found"


class NoCompany(NotFound):
     default_message = "No company linked to your account. Complete profile setup first."


class ExceedsBalance(PortalError):
     status_code = 400
     default_message = "Payout exceeds available balance."


class ConflictAlreadyExists(PortalError):
     status_code = 409
     default_message = "Resource already exists"


class RateLimited(PortalError):
     status_code = 429
     default_message = "Too many requests. Please try again later."


class UpstreamError(PortalError):
     """Opaque failure of the identity service, database or object storage."""
     status_code = 502
     default_message = "Upstream service error"


class UpstreamTimeout(UpstreamError):
     status_code = 504
     default_message = "The request timed out. Please try again."


class InternalVerificationFailure(PortalError):
     """A post-write re-read did not show the value that was written."""
     status_code = 500
     default_message = "Verification failed"


class ProvisioningFailed(PortalError):
     """A multi-step admin operation failed after remote state was created."""
     status_code = 500
     default_message = "Unable to create user. Please check inputs or permissions."


class RoleAssignmentFailed(PortalError):
     status_code = 500
     default_message = "Failed to assign role"
