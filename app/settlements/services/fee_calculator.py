"""
Fee split calculation.

The platform fee is a fixed rate in basis points of the charged amount,
rounded half-up to the nearest minor unit with integer arithmetic. The payee
receives the rest, so platform_fee_cents + payee_payout_cents always equals
amount_cents.

Usage:
    from settlements.services import FeeCalculator

    split = FeeCalculator.calculate(10000)
    split.platform_fee_cents   # 1500 at the default 15%
    split.payee_payout_cents   # 8500
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from settlements.exceptions import InvalidAmountError

BASIS_POINTS_DENOMINATOR = 10000
DEFAULT_FEE_RATE_BASIS_POINTS = 1500


@dataclass(frozen=True)
class FeeSplit:
    """Platform / payee split of one charged amount, all in minor units."""

    amount_cents: int
    platform_fee_cents: int
    payee_payout_cents: int


class FeeCalculator:
    """Pure fee computation. No I/O apart from reading settings."""

    @staticmethod
    def get_fee_rate_basis_points() -> int:
        rate = getattr(
            settings,
            "SETTLEMENT_FEE_RATE_BASIS_POINTS",
            DEFAULT_FEE_RATE_BASIS_POINTS,
        )
        if isinstance(rate, bool) or not isinstance(rate, int):
            raise ImproperlyConfigured(
                "SETTLEMENT_FEE_RATE_BASIS_POINTS must be an integer"
            )
        if not 0 <= rate <= BASIS_POINTS_DENOMINATOR:
            raise ImproperlyConfigured(
                "SETTLEMENT_FEE_RATE_BASIS_POINTS must be between 0 and 10000"
            )
        return rate

    @classmethod
    def calculate(
        cls,
        amount_cents: int,
        fee_rate_basis_points: int | None = None,
    ) -> FeeSplit:
        """
        Split an amount into platform fee and payee payout.

        Args:
            amount_cents: Positive amount in minor units
            fee_rate_basis_points: Override for the configured rate

        Raises:
            InvalidAmountError: amount is not a positive integer
            ImproperlyConfigured: rate outside 0..10000
        """
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise InvalidAmountError(
                "Amount must be an integer number of minor units",
                details={"amount_cents": repr(amount_cents)},
            )
        if amount_cents <= 0:
            raise InvalidAmountError(
                "Amount must be positive",
                details={"amount_cents": amount_cents},
            )

        if fee_rate_basis_points is None:
            rate = cls.get_fee_rate_basis_points()
        elif (
            isinstance(fee_rate_basis_points, bool)
            or not isinstance(fee_rate_basis_points, int)
            or not 0 <= fee_rate_basis_points <= BASIS_POINTS_DENOMINATOR
        ):
            raise ImproperlyConfigured(
                "Fee rate must be an integer between 0 and 10000 basis points"
            )
        else:
            rate = fee_rate_basis_points

        # round(amount * rate / 10000) half-up, exact for any int size
        platform_fee_cents = (amount_cents * rate * 2 + BASIS_POINTS_DENOMINATOR) // (
            2 * BASIS_POINTS_DENOMINATOR
        )

        return FeeSplit(
            amount_cents=amount_cents,
            platform_fee_cents=platform_fee_cents,
            payee_payout_cents=amount_cents - platform_fee_cents,
        )
