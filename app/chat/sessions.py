"""
Per-connection session state for the chat gateway.

A WebSocket connection carries one logical session. The session starts
unbound; a "connect" frame with a valid credential binds it to exactly
one VerifiedIdentity for the rest of its life. Frames that act on rooms
are refused until then.

State Machine:
    unbound ──(valid credential)──> bound ──(disconnect)──> closed
    unbound ──(disconnect)──> closed

    There is no way back from bound to unbound; a client that wants a
    different identity opens a new connection.

Usage:
    session = ChatSession(channel_name=self.channel_name)

    result = session.bind(identity)
    if not result.success:
        ...  # ALREADY_BOUND / SESSION_CLOSED

    guard = session.require_bound()
    if not guard.success:
        ...  # UNAUTHENTICATED
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import models

from core.services import ServiceResult

if TYPE_CHECKING:
    from authentication.identity import VerifiedIdentity


class SessionState(models.TextChoices):
    """
    States for a chat session.

    Terminal state: CLOSED

    State Flow:
        UNBOUND → BOUND → CLOSED
        UNBOUND → CLOSED
    """

    UNBOUND = "unbound", "Unbound"
    BOUND = "bound", "Bound"
    CLOSED = "closed", "Closed"


@dataclass
class ChatSession:
    """
    Ephemeral state of one logical chat session.

    Attributes:
        channel_name: Channel layer name of the owning consumer
        handshake_identity: Identity proven at the transport handshake,
            if any. Kept for logging only; it never authorizes frames.
        state: Current SessionState
        identity: Bound identity (None unless BOUND)
        failed_binds: Rejected connect frames so far
    """

    channel_name: str
    handshake_identity: VerifiedIdentity | None = None
    state: str = SessionState.UNBOUND
    identity: VerifiedIdentity | None = None
    failed_binds: int = 0

    @property
    def is_bound(self) -> bool:
        return self.state == SessionState.BOUND

    @property
    def user_id(self) -> uuid.UUID | None:
        return self.identity.user_id if self.identity else None

    def bind(self, identity: VerifiedIdentity) -> ServiceResult[VerifiedIdentity]:
        """
        Bind a verified identity to the session.

        Error codes:
            ALREADY_BOUND: Session is bound; identities cannot be swapped
            SESSION_CLOSED: Session has ended
        """
        if self.state == SessionState.CLOSED:
            return ServiceResult.failure("Session is closed", error_code="SESSION_CLOSED")
        if self.state == SessionState.BOUND:
            return ServiceResult.failure(
                "Session is already authenticated",
                error_code="ALREADY_BOUND",
            )

        self.identity = identity
        self.state = SessionState.BOUND
        return ServiceResult.success(identity)

    def record_failed_bind(self) -> int:
        """Count a rejected connect frame and return the running total."""
        self.failed_binds += 1
        return self.failed_binds

    def require_bound(self) -> ServiceResult[VerifiedIdentity]:
        """Guard for frames that act on rooms."""
        if self.state != SessionState.BOUND:
            return ServiceResult.failure(
                "Session is not authenticated",
                error_code="UNAUTHENTICATED",
            )
        return ServiceResult.success(self.identity)

    def close(self) -> None:
        """End the session. The identity is dropped with it."""
        self.state = SessionState.CLOSED
        self.identity = None
