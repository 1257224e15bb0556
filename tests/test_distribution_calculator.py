"""
Tests for the distribution calculator.
"""
import math
import pytest

from forecast_engine.domain.entities import ForecastMethod
from forecast_engine.domain.services import (
    CurveParameters,
    distribute,
    distribute_to_months,
    shape_factors,
    weight_adjustments,
    ai_noise,
)


ALL_METHODS = list(ForecastMethod)


class TestSumInvariant:
    """Calculator output always sums to the budget."""

    @pytest.mark.parametrize("method", ALL_METHODS)
    @pytest.mark.parametrize("weight", [1, 3, 5, 8, 10])
    def test_sums_to_budget(self, method, weight):
        amounts = distribute(1_000_000, method, weight, seed="rec-1")
        assert len(amounts) == 12
        assert sum(amounts) == pytest.approx(1_000_000, abs=0.01)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_amounts_non_negative(self, method):
        amounts = distribute(250_000, method, 1, seed="rec-2")
        assert all(a >= 0 for a in amounts)

    def test_odd_window(self):
        amounts = distribute(77_777.77, ForecastMethod.BELL_CURVE, 4, month_count=7)
        assert len(amounts) == 7
        assert sum(amounts) == pytest.approx(77_777.77, abs=0.01)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_large_budget_sums_exactly(self, method):
        """Float rounding on very large budgets lands in the last month."""
        amounts = distribute(1e15, method, 5, seed="rec-big")
        assert abs(math.fsum(amounts) - 1e15) <= 0.125
        assert all(a >= 0 for a in amounts)


class TestMethodShapes:
    """Tests for the individual curve shapes."""

    def test_linear_flat_at_full_weight(self):
        """Weight 10 linear spreads evenly (budget / 12)."""
        amounts = distribute(1_200_000, ForecastMethod.LINEAR, 10)
        assert all(a == pytest.approx(100_000) for a in amounts)

    def test_manual_matches_linear(self):
        assert distribute(500_000, ForecastMethod.MANUAL, 6) == pytest.approx(
            distribute(500_000, ForecastMethod.LINEAR, 6)
        )

    def test_s_curve_back_loaded(self):
        """S-curve of 1.2M at weight 5 rises month over month."""
        amounts = distribute(1_200_000, ForecastMethod.S_CURVE, 5)
        assert sum(amounts) == pytest.approx(1_200_000, abs=0.01)
        assert all(later > earlier for earlier, later in zip(amounts, amounts[1:]))
        assert amounts[-1] > 10 * amounts[0]

    def test_bell_curve_peaks_mid_window(self):
        amounts = distribute(600_000, ForecastMethod.BELL_CURVE, 10)
        assert amounts.index(max(amounts)) == 6
        assert amounts[0] < amounts[6]
        assert amounts[11] < amounts[6]

    def test_ai_forecast_factors_positive(self):
        factors = shape_factors(ForecastMethod.AI_FORECAST, 12, seed="abc")
        assert (factors >= 0.7 - 1e-12).all()
        assert (factors <= 1.3 + 1e-12).all()

    def test_curve_parameters_change_shape(self):
        steep = CurveParameters(s_curve_steepness=2.0)
        gentle = distribute(120_000, ForecastMethod.S_CURVE, 10)
        sharp = distribute(120_000, ForecastMethod.S_CURVE, 10, params=steep)
        assert sharp[0] < gentle[0]
        assert sum(sharp) == pytest.approx(120_000, abs=0.01)


class TestWeight:
    """Tests for the weight tilt."""

    def test_full_weight_is_neutral(self):
        assert list(weight_adjustments(10, 12)) == pytest.approx([1.0] * 12)

    def test_low_weight_ramps_up(self):
        ramp = weight_adjustments(1, 12)
        assert ramp[0] == pytest.approx(0.1)
        assert ramp[-1] == pytest.approx(1.0)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_first_month_share_grows_with_weight(self, method):
        """Higher weight never moves budget away from the first month."""
        shares = [
            distribute(100_000, method, w, seed="mono")[0] for w in range(1, 11)
        ]
        assert all(b >= a for a, b in zip(shares, shares[1:]))
        assert shares[-1] > shares[0]

    def test_weight_clamped(self):
        assert distribute(100_000, ForecastMethod.LINEAR, 42) == pytest.approx(
            distribute(100_000, ForecastMethod.LINEAR, 10)
        )
        assert distribute(100_000, ForecastMethod.LINEAR, -3) == pytest.approx(
            distribute(100_000, ForecastMethod.LINEAR, 1)
        )

    def test_non_numeric_weight_uses_minimum(self):
        assert distribute(100_000, ForecastMethod.S_CURVE, "heavy") == pytest.approx(
            distribute(100_000, ForecastMethod.S_CURVE, 1)
        )


class TestDeterminism:
    """Repeated calls give identical results."""

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_idempotent(self, method):
        first = distribute(321_000, method, 7, seed="rec-9")
        second = distribute(321_000, method, 7, seed="rec-9")
        assert first == second

    def test_ai_noise_seeded_by_record(self):
        a = distribute(321_000, ForecastMethod.AI_FORECAST, 7, seed="rec-a")
        b = distribute(321_000, ForecastMethod.AI_FORECAST, 7, seed="rec-b")
        assert a != b

    def test_ai_noise_bounded(self):
        for i in range(50):
            assert -0.1 <= ai_noise("seed", i, 0.1) <= 0.1


class TestEdgeCases:
    """Degenerate inputs."""

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_zero_budget(self, method):
        assert distribute(0, method, 5) == [0.0] * 12

    def test_negative_budget_treated_as_zero(self):
        assert distribute(-5_000, ForecastMethod.LINEAR, 5) == [0.0] * 12

    def test_invalid_budget_treated_as_zero(self):
        assert distribute("n/a", ForecastMethod.LINEAR, 5) == [0.0] * 12

    @pytest.mark.parametrize("budget", ["inf", float("-inf"), float("nan")])
    def test_non_finite_budget_treated_as_zero(self, budget):
        assert distribute(budget, ForecastMethod.LINEAR, 5) == [0.0] * 12

    def test_single_month(self):
        assert distribute(42_000, ForecastMethod.BELL_CURVE, 3, month_count=1) == [42_000]

    def test_empty_window(self):
        assert distribute(42_000, ForecastMethod.LINEAR, 3, month_count=0) == []

    def test_method_labels_accepted(self):
        assert distribute(1_200, "S-Curve", 10) == distribute(1_200, ForecastMethod.S_CURVE, 10)


class TestDistributeToMonths:
    """Tests for keyed output."""

    def test_keys_preserve_order(self):
        keys = ["2026-10", "2026-11", "2026-12", "2027-01"]
        result = distribute_to_months(4_000, ForecastMethod.LINEAR, 10, keys)
        assert list(result) == keys
        assert result["2027-01"] == pytest.approx(1_000)
