"""
Authentication application.

Owns the durable user record and acts as the identity provider for the
chat gateway.

Key components:
    - User model: Custom email-based user with a UUID primary key
    - Profile model: Username and avatar shown to conversation partners
    - IdentityProvider: Validates bearer access tokens into VerifiedIdentity

Usage:
    from authentication.models import User, Profile
    from authentication.identity import IdentityProvider, VerifiedIdentity
"""
