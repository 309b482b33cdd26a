"""
Authentication models.

This module defines the durable user records:
- User: Custom user model with email-based authentication (slim, auth-focused)
- Profile: Display data shown to the other side of a conversation

The authenticated principal used by chat code is *not* the User model; it
is the VerifiedIdentity value produced by authentication.identity. Chat
services only ever receive a user id.

Related files:
    - managers.py: Custom user manager for email-based creation
    - identity.py: Bearer credential validation
    - signals.py: Auto-create profile on user creation
"""

import re

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

# Reserved usernames that cannot be used
RESERVED_USERNAMES = frozenset([
    "admin", "administrator", "root", "system", "api", "www",
    "support", "help", "staff", "moderator", "bot", "seller",
    "buyer", "marketplace", "chat", "null", "undefined", "anonymous",
])


def validate_username_not_reserved(value):
    """Validate that username is not in the reserved list."""
    if value.lower() in RESERVED_USERNAMES:
        raise ValidationError(
            f"The username '{value}' is reserved and cannot be used."
        )


def validate_username_format(value):
    """Validate username format: 3-30 chars, alphanumeric + _ + -."""
    if not re.match(r"^[a-zA-Z0-9_-]{3,30}$", value):
        raise ValidationError(
            "Username must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the login identifier.

    The UUID primary key is the user id that appears in room identifiers,
    access tokens (user_id claim) and message payloads (senderId).

    Fields:
        id: UUID primary key
        email: Login identifier, unique
        is_active: Inactive users cannot authenticate
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (login identifier)",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        db_table = "auth_users"
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def display_name(self) -> str:
        """
        Name shown to the counterparty in a conversation.

        Falls back to the local part of the email when the profile has
        no username yet.
        """
        try:
            username = self.profile.username
        except Profile.DoesNotExist:
            username = ""
        return username or self.email.split("@")[0]

    @property
    def avatar_url(self) -> str | None:
        """URL of the profile picture, or None when none was uploaded."""
        try:
            picture = self.profile.profile_picture
        except Profile.DoesNotExist:
            return None
        return picture.url if picture else None


class Profile(BaseModel):
    """
    Public profile data for a user.

    Fields:
        user: OneToOne link to User (also serves as primary key)
        username: Display handle (3-30 chars, alphanumeric + _ + -)
        first_name: User's first name
        last_name: User's last name
        profile_picture: Avatar image shown in room lists

    Note:
        Profile is automatically created via signals when a User is created.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        primary_key=True,
        help_text="User this profile belongs to",
    )
    first_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's first name",
    )
    last_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="User's last name",
    )
    username = models.CharField(
        max_length=30,
        blank=True,
        db_index=True,
        validators=[validate_username_format, validate_username_not_reserved],
        help_text="Display handle (3-30 chars, alphanumeric + _ + -)",
    )
    profile_picture = models.ImageField(
        upload_to="profile_pictures/",
        blank=True,
        null=True,
        help_text="User's avatar",
    )

    class Meta:
        db_table = "auth_profiles"
        verbose_name = "profile"
        verbose_name_plural = "profiles"

    def __str__(self):
        return self.username or f"Profile({self.user_id})"

