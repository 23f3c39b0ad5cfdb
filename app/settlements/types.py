"""
Value types shared across the settlement services.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Caller:
    """
    Identity of whoever invoked a settlement operation.

    Attributes:
        user_id: Authenticated user's id, None for internal callers
        is_internal: Celery task or operator request carrying the internal secret
        source: Short label for logs ("api", "sweep", "eligibility_nudge", ...)
    """

    user_id: int | None = None
    is_internal: bool = False
    source: str = "api"

    @classmethod
    def for_user(cls, user, source: str = "api") -> Caller:
        return cls(user_id=user.pk, is_internal=False, source=source)

    @classmethod
    def internal(cls, source: str) -> Caller:
        return cls(user_id=None, is_internal=True, source=source)

    def as_log_context(self) -> dict:
        return {
            "caller_user_id": self.user_id,
            "caller_internal": self.is_internal,
            "caller_source": self.source,
        }
