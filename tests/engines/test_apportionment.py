"""
Tests for largest-remainder apportionment (costing_engines/apportionment.py).
"""

from decimal import Decimal

import pytest

from costing_engines.apportionment import apportion
from costing_kernel.exceptions import InvalidWeightsError


class TestApportion:
    """Shares are cent-exact and sum to the rounded total."""

    def test_proportional_split(self):
        assert apportion(Decimal("100"), [3, 7]) == (Decimal("30.00"), Decimal("70.00"))

    def test_residual_cent_goes_to_first_on_tie(self):
        assert apportion(Decimal("10"), [1, 1, 1]) == (
            Decimal("3.34"), Decimal("3.33"), Decimal("3.33"),
        )

    def test_residual_goes_to_largest_remainder(self):
        # exact shares 0.333.., 0.666.. -> floors 0.33, 0.66, one cent to the larger remainder
        assert apportion(Decimal("1.00"), [1, 2]) == (Decimal("0.33"), Decimal("0.67"))

    def test_single_weight_takes_all(self):
        assert apportion(Decimal("55.55"), [4]) == (Decimal("55.55"),)

    def test_zero_weight_gets_nothing(self):
        assert apportion(Decimal("50"), [0, 1]) == (Decimal("0.00"), Decimal("50.00"))

    def test_zero_total(self):
        assert apportion(Decimal("0"), [1, 2, 3]) == (Decimal("0.00"),) * 3

    def test_negative_total_is_symmetric(self):
        positive = apportion(Decimal("10"), [1, 1, 1])
        negative = apportion(Decimal("-10"), [1, 1, 1])
        assert negative == tuple(-s for s in positive)

    def test_total_is_rounded_first(self):
        shares = apportion(Decimal("10.005"), [1, 1])
        assert sum(shares) == Decimal("10.01")

    def test_decimal_weights(self):
        shares = apportion(Decimal("100"), [Decimal("0.5"), Decimal("1.5")])
        assert shares == (Decimal("25.00"), Decimal("75.00"))

    def test_sum_always_matches(self):
        shares = apportion(Decimal("99.99"), [7, 11, 13, 17])
        assert sum(shares) == Decimal("99.99")
        assert all(s == s.quantize(Decimal("0.01")) for s in shares)

    def test_deterministic(self):
        weights = [5, 3, 3, 1]
        assert apportion(Decimal("47.11"), weights) == apportion(Decimal("47.11"), weights)


class TestApportionRejections:
    """Invalid weights are never guessed around."""

    def test_empty_weights(self):
        with pytest.raises(InvalidWeightsError, match="no weights"):
            apportion(Decimal("10"), [])

    def test_negative_weight(self):
        with pytest.raises(InvalidWeightsError, match="negative"):
            apportion(Decimal("10"), [1, -1])

    def test_zero_sum(self):
        with pytest.raises(InvalidWeightsError, match="sum to zero") as exc_info:
            apportion(Decimal("10"), [0, 0])
        assert exc_info.value.code == "INVALID_WEIGHTS"
        assert exc_info.value.weights == ("0", "0")
