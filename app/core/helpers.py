"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- UUID validation and parsing
- Bearer credential extraction from header values

Usage:
    from core.helpers import parse_uuid, extract_bearer_token

    listing_id = parse_uuid(request.data.get("listingId"), field="listingId")
    token = extract_bearer_token(headers.get("Authorization"))
"""

from __future__ import annotations

import uuid

from core.exceptions import ValidationError


def validate_uuid(value: object) -> bool:
    """
    Check if value is a valid UUID.

    Example:
        is_valid = validate_uuid("550e8400-e29b-41d4-a716-446655440000")  # True
    """
    if isinstance(value, uuid.UUID):
        return True
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError):
        return False


def parse_uuid(value: object, field: str = "id") -> uuid.UUID:
    """
    Parse value into a UUID.

    Args:
        value: A UUID instance or its string form
        field: Name used in the error message

    Returns:
        The parsed UUID

    Raises:
        ValidationError: With error code INVALID_IDENTIFIER if the value
            is missing or not a UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    if value is None or value == "":
        raise ValidationError(
            f"{field} is required",
            error_code="INVALID_IDENTIFIER",
            details={"field": field},
        )
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError) as e:
        raise ValidationError(
            f"Invalid {field}",
            error_code="INVALID_IDENTIFIER",
            details={"field": field, "value": str(value)},
        ) from e


def extract_bearer_token(header_value: str | bytes | None) -> str | None:
    """
    Extract the token from an "Authorization: Bearer <token>" value.

    Returns None when the value is missing, uses another scheme, or
    carries an empty token.
    """
    if not header_value:
        return None
    if isinstance(header_value, bytes):
        header_value = header_value.decode("latin-1")
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None
