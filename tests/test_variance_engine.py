"""
Tests for the variance engine.
"""
import pytest

from forecast_engine.domain.entities import ForecastRecord, ForecastType
from forecast_engine.domain.services import variance, aggregate_totals


def make_record(record_id, budget, current, previous, eac=0.0, ctc=0.0):
    return ForecastRecord(
        id=record_id,
        forecast_type=ForecastType.GC_GR,
        cost_code=f"01-{record_id}",
        budget=budget,
        estimated_at_completion=eac,
        cost_to_complete=ctc,
        monthly_distribution=current,
        previous_monthly_distribution=previous,
    )


class TestMonthlyVariance:
    """Tests for current - previous per month."""

    def test_basic(self):
        result = variance({"2026-10": 150.0, "2026-11": 80.0}, {"2026-10": 100.0, "2026-11": 100.0})
        assert result == {"2026-10": 50.0, "2026-11": -20.0}

    def test_missing_previous_treated_as_zero(self):
        result = variance({"2026-10": 150.0}, {})
        assert result == {"2026-10": 150.0}

    def test_missing_current_treated_as_zero(self):
        result = variance({"2026-10": 10.0}, {"2026-10": 10.0, "2026-09": 40.0})
        assert list(result) == ["2026-10", "2026-09"]
        assert result["2026-09"] == -40.0

    def test_none_values(self):
        assert variance({"2026-10": None}, {"2026-10": 5.0}) == {"2026-10": -5.0}

    def test_record_property(self):
        record = make_record("a", 100, {"2026-10": 60.0}, {"2026-10": 45.0})
        assert record.monthly_variance == {"2026-10": 15.0}


class TestAggregateTotals:
    """Tests for table footer totals."""

    def test_summary_columns(self):
        records = [
            make_record("a", 500_000, {}, {}, eac=520_000, ctc=200_000),
            make_record("b", 300_000, {}, {}, eac=290_000, ctc=100_000),
        ]
        totals = aggregate_totals(records)
        assert totals.record_count == 2
        assert totals.budget == 800_000
        assert totals.estimated_at_completion == 810_000
        assert totals.cost_to_complete == 300_000
        assert totals.variance == pytest.approx(10_000)

    def test_monthly_columns_summed_independently(self):
        records = [
            make_record("a", 0, {"2026-10": 10.0, "2026-11": 20.0}, {"2026-10": 5.0, "2026-11": 20.0}),
            make_record("b", 0, {"2026-10": 1.0, "2026-11": 2.0}, {"2026-10": 4.0, "2026-11": 0.0}),
        ]
        totals = aggregate_totals(records, ["2026-10", "2026-11"])
        assert totals.monthly_actual == {"2026-10": 11.0, "2026-11": 22.0}
        assert totals.monthly_previous == {"2026-10": 9.0, "2026-11": 20.0}
        assert totals.monthly_variance == {"2026-10": 2.0, "2026-11": 2.0}

    def test_month_keys_fix_columns(self):
        records = [make_record("a", 0, {"2026-10": 10.0}, {})]
        totals = aggregate_totals(records, ["2026-10", "2026-11"])
        assert totals.monthly_actual == {"2026-10": 10.0, "2026-11": 0.0}

    def test_empty(self):
        totals = aggregate_totals([])
        assert totals.record_count == 0
        assert totals.budget == 0.0
        assert totals.monthly_actual == {}

    def test_to_dict(self):
        data = aggregate_totals([make_record("a", 10, {"2026-10": 10.0}, {})]).to_dict()
        assert data["budget"] == 10.0
        assert data["monthly_variance"] == {"2026-10": 10.0}
