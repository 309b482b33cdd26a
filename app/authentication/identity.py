"""
Identity provider for the chat gateway.

Turns a raw bearer credential into a VerifiedIdentity: a small immutable
value carrying only what chat authorization needs (the user id). The
durable User model never leaves this module; WebSocket sessions, the
message router and the services are all handed the identity or its
user_id explicitly.

Credentials are djangorestframework-simplejwt access tokens, the same
tokens the REST API accepts through JWTAuthentication.

Usage:
    from authentication.identity import IdentityProvider

    result = IdentityProvider.verify(raw_token)
    if result.success:
        session.bind(result.data)

Note:
    verify() touches the database (the user must still exist and be
    active). Call it through database_sync_to_async from async code.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from core.exceptions import AuthenticationError, ValidationError
from core.helpers import parse_uuid
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from authentication.models import User


@dataclass(frozen=True)
class VerifiedIdentity:
    """
    A user id that has been proven by a valid credential.

    Attributes:
        user_id: UUID of the authenticated user
        token_id: The token's jti claim, for log correlation
        expires_at: When the credential stops being valid
    """

    user_id: uuid.UUID
    token_id: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> VerifiedIdentity:
        """Build an identity for a user DRF has already authenticated."""
        return cls(user_id=user.pk)


class IdentityProvider(BaseService):
    """
    Validates bearer credentials.

    Error codes:
        UNAUTHENTICATED: No credential supplied
        INVALID_TOKEN: Malformed, expired, or for an unknown/inactive user
    """

    @classmethod
    def verify(cls, raw_token: str | None) -> ServiceResult[VerifiedIdentity]:
        """
        Validate a raw access token.

        Args:
            raw_token: The token string without the "Bearer " prefix

        Returns:
            ServiceResult with the VerifiedIdentity on success
        """
        try:
            identity = cls._decode(raw_token)
        except AuthenticationError as e:
            cls.get_logger().info(f"Credential rejected: {e.error_code}")
            return ServiceResult.from_error(e)
        return ServiceResult.success(identity)

    @classmethod
    def _decode(cls, raw_token: str | None) -> VerifiedIdentity:
        from authentication.models import User

        if not raw_token:
            raise AuthenticationError(
                "Authentication credentials were not provided",
                error_code="UNAUTHENTICATED",
            )

        try:
            token = AccessToken(raw_token)
        except TokenError as e:
            raise AuthenticationError(
                "Token is invalid or expired",
                error_code="INVALID_TOKEN",
            ) from e

        try:
            user_id = parse_uuid(token.get(api_settings.USER_ID_CLAIM), field="user_id")
        except ValidationError as e:
            raise AuthenticationError(
                "Token carries no usable user id",
                error_code="INVALID_TOKEN",
            ) from e

        if not User.objects.filter(pk=user_id, is_active=True).exists():
            raise AuthenticationError(
                "User not found or inactive",
                error_code="INVALID_TOKEN",
            )

        exp = token.get("exp")
        expires_at = datetime.fromtimestamp(exp, tz=dt_timezone.utc) if exp else None
        return VerifiedIdentity(
            user_id=user_id,
            token_id=token.get(api_settings.JTI_CLAIM),
            expires_at=expires_at,
        )
