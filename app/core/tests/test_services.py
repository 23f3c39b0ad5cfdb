"""
Tests for ServiceResult and BaseService.
"""

from __future__ import annotations

import pytest

from core.services import BaseService, ServiceResult


class SampleService(BaseService):
    pass


# =============================================================================
# ServiceResult
# =============================================================================


class TestServiceResult:
    """Tests for the result wrapper."""

    def test_success_is_truthy(self):
        """A successful result should evaluate to True and carry data."""
        result = ServiceResult.success({"record_id": "abc"})

        assert result
        assert result.data == {"record_id": "abc"}
        assert result.error is None

    def test_failure_is_falsy(self):
        """A failed result should evaluate to False and expose error fields."""
        result = ServiceResult.failure("boom", error_code="BOOM")

        assert not result
        assert result.data is None
        assert result.error == "boom"
        assert result.error_code == "BOOM"


# =============================================================================
# BaseService
# =============================================================================


class TestBaseService:
    """Tests for shared service helpers."""

    def test_logger_named_after_service(self):
        """get_logger should return a logger named module.ClassName."""
        logger = SampleService.get_logger()

        assert logger.name == f"{__name__}.SampleService"

    @pytest.mark.django_db
    def test_atomic_rolls_back_on_error(self):
        """Writes inside atomic() should be rolled back when it raises."""
        from authentication.models import User

        with pytest.raises(RuntimeError):
            with SampleService.atomic():
                User.objects.create_user(email="rollback@example.com", password="x")
                raise RuntimeError("abort")

        assert not User.objects.filter(email="rollback@example.com").exists()
