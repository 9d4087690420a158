"""Authentication error taxonomy. Every error is recoverable by the caller."""
from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_410_GONE,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class AuthError(HTTPException):
    code = "auth_error"

    def __init__(self, detail: str, status_code: int, headers: dict[str, str] | None = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class Conflict(AuthError):
    code = "conflict"

    def __init__(self, detail: str = "Email already registered"):
        super().__init__(detail, HTTP_409_CONFLICT)


class NotFound(AuthError):
    code = "not_found"

    def __init__(self, detail: str = "Not found"):
        super().__init__(detail, HTTP_404_NOT_FOUND)


class Expired(AuthError):
    code = "otp_expired"

    def __init__(self, detail: str = "OTP has expired"):
        super().__init__(detail, HTTP_410_GONE)


class InvalidOtp(AuthError):
    code = "invalid_otp"

    def __init__(self, detail: str = "Invalid OTP"):
        super().__init__(detail, HTTP_400_BAD_REQUEST)


class RateLimited(AuthError):
    code = "rate_limited"

    def __init__(self, detail: str = "Too many requests. Please try again later.", retry_after: int | None = None):
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(detail, HTTP_429_TOO_MANY_REQUESTS, headers=headers)


class Unauthenticated(AuthError):
    """Raised for any missing, invalid, tampered, expired or revoked credential.

    The detail text is fixed so callers cannot tell which check failed.
    """

    code = "unauthenticated"

    def __init__(self):
        super().__init__("Not authenticated", HTTP_401_UNAUTHORIZED, headers={"WWW-Authenticate": "Bearer"})


class CapacityExceeded(AuthError):
    code = "member_id_capacity"

    def __init__(self, prefix: str):
        super().__init__(f"No member ids left for prefix {prefix}", HTTP_503_SERVICE_UNAVAILABLE)


class MemberIdUnavailable(AuthError):
    """Concurrent registrations kept taking the generated id until the retries ran out."""

    code = "member_id_unavailable"

    def __init__(self, detail: str = "Could not allocate a member id. Please try again."):
        super().__init__(detail, HTTP_503_SERVICE_UNAVAILABLE)


class DeliveryFailed(AuthError):
    code = "delivery_failed"

    def __init__(self, detail: str = "We could not send the email. Please try again later."):
        super().__init__(detail, HTTP_503_SERVICE_UNAVAILABLE)


class StoreUnavailable(AuthError):
    code = "store_unavailable"

    def __init__(self, detail: str = "Rate limit store unavailable"):
        super().__init__(detail, HTTP_503_SERVICE_UNAVAILABLE)


class NotificationError(Exception):
    """Raised by the Notifier when an email could not be delivered."""
