"""
Base exception classes for application-wide error handling.

Services report expected failures through core.services.ServiceResult.
The exceptions here are for failures that have to cross a seam where a
result object is awkward: a collaborator lookup that must succeed, a
credential that cannot be decoded, a fan-out layer that has been shut down.
Callers at the service boundary convert them back into ServiceResult with
ServiceResult.from_error().

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input (identifiers, content)
    ├── NotFoundError - Room, listing or user missing
    ├── AuthenticationError - Missing, invalid or expired credential
    ├── ConflictError - Unresolvable uniqueness race
    └── TransientError - Storage or pub/sub failure worth retrying

Usage:
    from core.exceptions import NotFoundError

    listing = ListingCatalog.get_listing(listing_id)
    if listing is None:
        raise NotFoundError("Listing not found", error_code="LISTING_NOT_FOUND")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (identifiers, limits, etc.)
        status_code: HTTP status a view should answer with
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Room not found",
                "error_code": "ROOM_NOT_FOUND",
                "details": {"room_id": "listing_..._buyer_..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input cannot be interpreted.

    Use for:
    - Identifiers that are not valid UUIDs
    - Blank or oversized message content
    - Self-conversations

    Example:
        raise ValidationError(
            "Invalid listing identifier",
            error_code="INVALID_IDENTIFIER",
            details={"value": raw},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a single resource that is expected to exist does not.

    Note:
        List queries return empty results instead of raising.
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class AuthenticationError(BaseApplicationError):
    """
    Raised when a bearer credential is missing, malformed or expired.

    The WebSocket gateway turns this into a rejected connect frame; the
    REST layer relies on DRF's own AuthenticationFailed instead.
    """

    default_error_code: str = "UNAUTHENTICATED"
    status_code: int = 401


class ConflictError(BaseApplicationError):
    """
    Raised when a uniqueness race cannot be resolved by re-reading.

    Example:
        raise ConflictError(
            "Room could not be created or re-read",
            error_code="ROOM_CONFLICT",
            details={"room_id": room_id},
        )
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class TransientError(BaseApplicationError):
    """
    Raised when storage or the channel layer fails in a way that may
    succeed on retry.

    Note:
        Log the original error for debugging but don't expose internal
        details to clients.
    """

    default_error_code: str = "TRANSIENT_ERROR"
    status_code: int = 503
