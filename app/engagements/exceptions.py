"""
Engagement exceptions.
"""

from core.exceptions import NotFoundError


class EngagementNotFoundError(NotFoundError):
    """Raised when an engagement id does not resolve."""

    default_error_code = "ENGAGEMENT_NOT_FOUND"
