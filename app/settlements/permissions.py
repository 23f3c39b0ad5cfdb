"""
Permission classes for settlement API.

- HasInternalSecret: request carries the internal shared secret

Internal endpoints (payout retries) are called by operators and other
services, never by end users, so they authenticate with a shared secret in
the X-Internal-Secret header instead of a user token.
"""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from django.conf import settings
from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

INTERNAL_SECRET_HEADER = "X-Internal-Secret"


class HasInternalSecret(permissions.BasePermission):
    """
    Allows access only to requests carrying SETTLEMENT_INTERNAL_SECRET.

    Compared in constant time. With the setting empty every request is
    denied.
    """

    message = "Internal endpoint."

    def has_permission(self, request: Request, view: APIView) -> bool:
        expected = getattr(settings, "SETTLEMENT_INTERNAL_SECRET", "")
        if not expected:
            return False

        provided = request.headers.get(INTERNAL_SECRET_HEADER, "")
        return hmac.compare_digest(provided.encode(), expected.encode())
