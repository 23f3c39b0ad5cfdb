"""
Base service layer patterns for business logic encapsulation.

- ServiceResult: result wrapper for expected failures (webhook handlers)
- BaseService: logging and transaction helpers shared by services

Pattern Comparison:
    - ServiceResult: expected outcomes a caller branches on
    - Exceptions: failures that abort the operation (core.exceptions)

Usage:
    from core.services import BaseService, ServiceResult

    class EngagementService(BaseService):
        @classmethod
        def mark_paid(cls, engagement_id):
            with cls.atomic():
                ...
            cls.get_logger().info("Engagement marked paid")
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code

    Usage:
        result = dispatch_webhook(event)
        if result.success:
            event.mark_processed()
        else:
            event.mark_failed(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
    ) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise core.exceptions for failures that abort the operation
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class, e.g. settlements.services.payout_retry.PayoutRetryService."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
