"""Error taxonomy for EchoCity.

Every error a service raises derives from :class:`EchoCityError` and
carries the HTTP status and machine-readable code the API layer uses
when rendering it.  Messages are safe to show to end users.
"""

from __future__ import annotations


class EchoCityError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code).strip()


class AuthenticationError(EchoCityError):
    """Session missing or expired. Please sign in again."""

    status_code = 401
    code = "UNAUTHORIZED"


class AuthorizationError(EchoCityError):
    """Access denied. Admin privileges required."""

    status_code = 403
    code = "FORBIDDEN"


class ValidationError(EchoCityError):
    """The request is not valid."""

    status_code = 422
    code = "VALIDATION_ERROR"


class IllegalTransitionError(ValidationError):
    """This status change is not allowed."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str, allowed: list[str] | None = None) -> None:
        self.current = current
        self.target = target
        self.allowed = sorted(allowed or [])
        super().__init__(f"Cannot move a complaint from '{current}' to '{target}'.")


class DuplicateComplaintError(ValidationError):
    """You have already reported a similar complaint."""

    status_code = 409
    code = "DUPLICATE_COMPLAINT"


class NotFoundError(EchoCityError):
    """The requested record does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class RemoteServiceError(EchoCityError):
    """A remote service is temporarily unavailable. Please try again."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    retryable = True


class StaleRecordError(EchoCityError):
    """This complaint was changed by someone else. Please reload it."""

    status_code = 409
    code = "STALE_RECORD"
    retryable = True
