"""
Forecast Record Store - In-memory forecast line items for one project.

Owns the rolling month window, recalculates distributions when the
inputs of the calculator change, applies direct cell edits, and
aggregates footer totals per forecast type.
"""
import logging
import math
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..entities.forecast_record import (
    ForecastRecord, ForecastType, ForecastMethod, coerce_amount, rolling_month_keys,
)
from ..exceptions import InvariantViolationError, RecordNotFoundError, UnknownMonthError
from .distribution_calculator import (
    CurveParameters, DEFAULT_CURVE_PARAMETERS, distribute_to_months,
)
from .variance_engine import ForecastTotals, aggregate_totals

logger = logging.getLogger(__name__)

EDIT_EPSILON = 1e-9
DEFAULT_SUM_TOLERANCE = 0.01


class ForecastRecordStore:
    """
    Collection of forecast records sharing one rolling window.

    Invariants:
    - Every record's current and previous distributions carry exactly
      the store's month keys, in window order
    - Calculator output sums to the record budget; only direct cell
      edits can move the sum away from it
    - previous_monthly_distribution changes only through commit()
    """

    def __init__(
        self,
        project_id: str = "default",
        month_keys: Optional[List[str]] = None,
        curve_params: CurveParameters = DEFAULT_CURVE_PARAMETERS,
        sum_tolerance: float = DEFAULT_SUM_TOLERANCE,
    ):
        self.project_id = project_id
        self.month_keys: List[str] = list(month_keys) if month_keys else rolling_month_keys()
        self.curve_params = curve_params
        self.sum_tolerance = sum_tolerance
        self._records: Dict[str, ForecastRecord] = {}

    # =========================================================================
    # Lookup
    # =========================================================================

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def find(self, record_id: str) -> Optional[ForecastRecord]:
        return self._records.get(record_id)

    def get(self, record_id: str) -> ForecastRecord:
        """
        Get a record by id.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def records(self, forecast_type: Optional[ForecastType] = None) -> List[ForecastRecord]:
        """All records, or only those of one forecast type, in insertion order."""
        if forecast_type is None:
            return list(self._records.values())
        forecast_type = ForecastType.parse(forecast_type)
        return [r for r in self._records.values() if r.forecast_type is forecast_type]

    # =========================================================================
    # Mutation
    # =========================================================================

    def calculate(self, record: ForecastRecord) -> Dict[str, float]:
        """
        Calculator output for a record over the store's window.

        Raises:
            InvariantViolationError: If a non-zero distribution misses the budget
        """
        distribution = distribute_to_months(
            record.budget,
            record.method,
            record.weight,
            self.month_keys,
            seed=record.id,
            params=self.curve_params,
        )
        total = math.fsum(distribution.values())
        # Degenerate curves fall back to zeros and are not checked;
        # the tolerance never drops below float resolution at the budget
        tolerance = max(self.sum_tolerance, 4 * math.ulp(record.budget))
        if total and abs(total - record.budget) > tolerance:
            raise InvariantViolationError(
                "distribution_sum",
                f"{record.budget:,.2f}",
                f"{total:,.2f}",
            )
        return distribution

    def _align(self, distribution: Dict[str, float]) -> Dict[str, float]:
        return {key: coerce_amount(distribution.get(key, 0.0)) for key in self.month_keys}

    def upsert(self, record: ForecastRecord) -> ForecastRecord:
        """
        Insert or replace a record.

        New records get a fresh distribution unless one is supplied. For
        existing records the distribution is recalculated when method,
        weight or budget changed; otherwise only the months whose amounts
        differ from the stored ones are applied as raw edits.

        Returns:
            The stored record
        """
        existing = self._records.get(record.id)
        record = replace(
            record,
            project_id=self.project_id,
            monthly_distribution=dict(record.monthly_distribution),
            previous_monthly_distribution=dict(record.previous_monthly_distribution),
        )

        if existing is None:
            if record.monthly_distribution:
                record.monthly_distribution = self._align(record.monthly_distribution)
            else:
                record.monthly_distribution = self.calculate(record)
            record.previous_monthly_distribution = self._align(record.previous_monthly_distribution)
            logger.info(f"Created forecast record {record.id} ({record.method.value})")

        elif (
            record.method is not existing.method
            or record.weight != existing.weight
            or record.budget != existing.budget
        ):
            record.monthly_distribution = self.calculate(record)
            record.previous_monthly_distribution = dict(existing.previous_monthly_distribution)
            logger.debug(
                f"Recalculated {record.id}: {existing.method.value}/{existing.weight} -> "
                f"{record.method.value}/{record.weight}, budget {record.budget:,.2f}"
            )

        else:
            merged = dict(existing.monthly_distribution)
            touched = []
            for key in self.month_keys:
                if key not in record.monthly_distribution:
                    continue
                amount = coerce_amount(record.monthly_distribution[key])
                if abs(amount - merged[key]) > EDIT_EPSILON:
                    merged[key] = amount
                    touched.append(key)
            record.monthly_distribution = merged
            record.previous_monthly_distribution = dict(existing.previous_monthly_distribution)
            if touched:
                logger.debug(f"Applied cell edits to {record.id}: {', '.join(touched)}")

        self._records[record.id] = record
        return record

    def edit_month(self, record_id: str, month_key: str, amount: float) -> ForecastRecord:
        """
        Overwrite a single month, bypassing the calculator.

        Raises:
            RecordNotFoundError: If the record does not exist
            UnknownMonthError: If month_key is outside the window
        """
        record = self.get(record_id)
        if month_key not in record.monthly_distribution:
            raise UnknownMonthError(record_id, month_key)
        record.monthly_distribution[month_key] = coerce_amount(amount)
        logger.debug(f"Edited {record_id} {month_key} -> {record.monthly_distribution[month_key]:,.2f}")
        return record

    def set_method(self, record_id: str, method: ForecastMethod) -> ForecastRecord:
        """Change a record's method and recalculate its distribution."""
        record = self.get(record_id)
        return self.upsert(replace(record, method=ForecastMethod.parse(method)))

    def load(self, records: Iterable[ForecastRecord]) -> None:
        """Replace the store contents with persisted records, as stored."""
        self._records = {}
        for record in records:
            record = replace(
                record,
                project_id=self.project_id,
                monthly_distribution=self._align(record.monthly_distribution),
                previous_monthly_distribution=self._align(record.previous_monthly_distribution),
            )
            self._records[record.id] = record

    def commit(self, record_ids: Optional[Iterable[str]] = None) -> List[str]:
        """
        Save the current forecast as the new previous snapshot.

        Args:
            record_ids: Records to commit (default: all)

        Returns:
            Ids of committed records
        """
        ids = list(record_ids) if record_ids is not None else list(self._records)
        for record_id in ids:
            record = self.get(record_id)
            record.previous_monthly_distribution = dict(record.monthly_distribution)
        logger.info(f"Committed {len(ids)} forecast record(s) for project {self.project_id}")
        return ids

    def roll_forward(self, as_of: Optional[date] = None) -> List[str]:
        """
        Move the window to start at the as_of month.

        Months that fall out of the window are dropped; new months start
        at 0 in both distributions.

        Returns:
            The new month keys
        """
        new_keys = rolling_month_keys(as_of, len(self.month_keys))
        if new_keys == self.month_keys:
            return self.month_keys
        self.month_keys = new_keys
        for record in self._records.values():
            record.monthly_distribution = self._align(record.monthly_distribution)
            record.previous_monthly_distribution = self._align(record.previous_monthly_distribution)
        logger.info(f"Rolled forecast window to {new_keys[0]}..{new_keys[-1]}")
        return new_keys

    # =========================================================================
    # Aggregation
    # =========================================================================

    def totals(self, forecast_type: Optional[ForecastType] = None) -> ForecastTotals:
        """Footer totals for one forecast type (None = every record)."""
        return aggregate_totals(self.records(forecast_type), self.month_keys)

    def snapshot(self) -> dict:
        """Read-only view of records and totals for export collaborators."""
        return {
            'project_id': self.project_id,
            'month_keys': list(self.month_keys),
            'records': [r.to_dict() for r in self._records.values()],
            'totals': {
                ForecastType.GC_GR.value: self.totals(ForecastType.GC_GR).to_dict(),
                ForecastType.DRAW.value: self.totals(ForecastType.DRAW).to_dict(),
                'ALL': self.totals().to_dict(),
            },
        }
