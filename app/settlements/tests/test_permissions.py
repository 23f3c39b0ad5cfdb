"""
Tests for settlement permission classes.
"""

import pytest
from rest_framework.test import APIRequestFactory

from settlements.permissions import INTERNAL_SECRET_HEADER, HasInternalSecret


@pytest.fixture
def request_with_secret():
    factory = APIRequestFactory()

    def _create(secret: str | None):
        headers = {}
        if secret is not None:
            headers["HTTP_X_INTERNAL_SECRET"] = secret
        return factory.post("/", **headers)

    return _create


class TestHasInternalSecret:
    """Tests for HasInternalSecret."""

    def test_header_name(self):
        assert INTERNAL_SECRET_HEADER == "X-Internal-Secret"

    def test_allows_matching_secret(self, request_with_secret):
        request = request_with_secret("internal-test-secret")

        assert HasInternalSecret().has_permission(request, view=None) is True

    @pytest.mark.parametrize("secret", [None, "", "wrong-secret", "internal-test-secre"])
    def test_denies_other_values(self, request_with_secret, secret):
        request = request_with_secret(secret)

        assert HasInternalSecret().has_permission(request, view=None) is False

    def test_denies_everything_when_unconfigured(self, request_with_secret, settings):
        settings.SETTLEMENT_INTERNAL_SECRET = ""
        request = request_with_secret("")

        assert HasInternalSecret().has_permission(request, view=None) is False
