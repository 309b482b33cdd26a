"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views, consumers and
    models. Views and consumers handle transport concerns, models handle
    data, services handle logic. Every service takes the acting user's id
    as an explicit argument; nothing reads an ambient request or session.

Pattern Comparison:
    - ServiceResult: Use for expected failures (membership, blank content)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class RoomService(BaseService):
        @classmethod
        def get_room(cls, room_id: str) -> ServiceResult[ChatRoom]:
            room = ChatRoom.objects.filter(room_id=room_id).first()
            if room is None:
                return ServiceResult.failure(
                    "Room not found",
                    error_code="ROOM_NOT_FOUND",
                )
            return ServiceResult.success(room)

    # In a view
    result = RoomService.get_room(room_id)
    if result.success:
        return Response(RoomDetailSerializer(result.data).data)
    return Response({"error": result.error, "error_code": result.error_code}, status=404)

Best-effort side effects (e.g. notifying the other participant of a room)
also return a ServiceResult; the caller logs a failure with
BaseService.log_failure() and carries on with the primary operation.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        return ServiceResult.success(message)

        # Failure case
        return ServiceResult.failure("Message content is empty", "EMPTY_CONTENT")

        # Check result
        result = MessageService.append(room_id, sender_id, content)
        if result.success:
            message = result.data
        else:
            logger.info(f"Send rejected: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data (may be None for side-effect-only operations)

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_error(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from an application exception.

        Keeps the exception's error code so the transport layer can map
        it to a status without knowing where it was raised.
        """
        return cls(success=False, error=exc.message, error_code=exc.error_code)

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an arbitrary exception.

        Args:
            exc: The caught exception
            error_code: Optional error code (defaults to exception class name)

        Returns:
            ServiceResult with error details from exception

        Example:
            try:
                await registry.publish_to_user(user_id, event)
            except Exception as e:
                return ServiceResult.from_exception(e, "PUBLISH_FAILED")
        """
        if isinstance(exc, BaseApplicationError) and error_code is None:
            return cls.from_error(exc)
        return cls(
            success=False,
            error=str(exc) or exc.__class__.__name__,
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        """Allow using result in boolean context (same as result.success)."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    - Exception and failure logging

    Design Notes:
        - Use @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs (e.g. "chat.services.RoomService").
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Example:
            with cls.atomic():
                room = ChatRoom.objects.select_for_update().get(room_id=room_id)
                Message.objects.create(room=room, ...)
                # If the insert fails the row lock is released with the rollback
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
        error_code: str | None = None,
    ) -> ServiceResult:
        """
        Convert exception to ServiceResult with logging.

        Args:
            exc: The caught exception
            context: Additional context for logging
            log_level: Logging level (default ERROR)
            error_code: Error code to report (defaults to the exception's)

        Returns:
            ServiceResult with error details
        """
        logger = cls.get_logger()
        message = f"{context}: {exc}" if context else str(exc)
        logger.log(log_level, message, exc_info=log_level >= logging.ERROR)
        return ServiceResult.from_exception(exc, error_code)

    @classmethod
    def log_failure(
        cls,
        result: ServiceResult,
        context: str,
        log_level: int = logging.WARNING,
    ) -> None:
        """
        Log a failed result from a best-effort operation.

        Does nothing for successful results, so callers can pass every
        side-effect result through it unconditionally.
        """
        if result.success:
            return
        cls.get_logger().log(
            log_level,
            f"{context} failed: {result.error} ({result.error_code})",
        )
