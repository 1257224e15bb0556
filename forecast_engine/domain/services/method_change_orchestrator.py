"""
Method-Change Orchestrator - Routes record changes through the calculator
and, for switches into AI_FORECAST, the acknowledgment workflow.

Transition rule when a record's method becomes AI_FORECAST:
1. Memo the method it is leaving
2. Recalculate the distribution
3. Open a review, unless the record's latest decision was an acceptance
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..entities.acknowledgment import AcknowledgmentState
from ..entities.forecast_record import ForecastMethod, ForecastRecord, coerce_weight
from ..exceptions import RecordLockedError
from .acknowledgment_state_machine import AcknowledgmentStateMachine
from .acknowledgment_store import AcknowledgmentStore
from .record_store import ForecastRecordStore

logger = logging.getLogger(__name__)


@dataclass
class MethodChangeResult:
    """Outcome of applying a record change."""
    record: ForecastRecord
    previous_method: Optional[ForecastMethod]
    method_changed: bool
    review_opened: bool
    state: AcknowledgmentState

    def to_dict(self) -> dict:
        return {
            'record': self.record.to_dict(),
            'previous_method': self.previous_method.value if self.previous_method else None,
            'method_changed': self.method_changed,
            'review_opened': self.review_opened,
            'state': self.state.value,
        }


class MethodChangeOrchestrator:
    """Applies record changes, triggering reviews for AI forecasts."""

    def __init__(
        self,
        records: ForecastRecordStore,
        acknowledgments: AcknowledgmentStore,
        workflow: AcknowledgmentStateMachine,
    ):
        self.records = records
        self.acknowledgments = acknowledgments
        self.workflow = workflow

    def apply(self, record: ForecastRecord) -> MethodChangeResult:
        """
        Insert or update a record.

        Raises:
            RecordLockedError: If the method changes while a review is pending
        """
        existing = self.records.find(record.id)
        previous_method = existing.method if existing else None
        method_changed = previous_method is not record.method

        if existing is not None and method_changed and self.workflow.is_pending(record.id):
            logger.warning(
                f"Refused method change {previous_method.value} -> {record.method.value} "
                f"for record {record.id}: review pending"
            )
            raise RecordLockedError(record.id, record.method.value)

        entering_ai = (
            record.method is ForecastMethod.AI_FORECAST
            and previous_method is not ForecastMethod.AI_FORECAST
        )
        if entering_ai:
            self.acknowledgments.remember_previous_method(
                record.id, previous_method or ForecastMethod.MANUAL
            )

        stored = self.records.upsert(record)

        review_opened = False
        if entering_ai:
            if self.acknowledgments.has_standing_acceptance(record.id):
                logger.info(f"Record {record.id} re-selected AI_FORECAST; prior acceptance stands")
            else:
                self.workflow.open(record.id)
                review_opened = True
        elif method_changed and existing is not None:
            logger.info(
                f"Record {record.id} method {previous_method.value} -> {record.method.value}"
            )

        return MethodChangeResult(
            record=stored,
            previous_method=previous_method,
            method_changed=method_changed,
            review_opened=review_opened,
            state=self.workflow.state(record.id),
        )

    def change_method(self, record_id: str, method: ForecastMethod) -> MethodChangeResult:
        record = self.records.get(record_id)
        return self.apply(replace(record, method=ForecastMethod.parse(method)))

    def change_weight(self, record_id: str, weight: int) -> MethodChangeResult:
        record = self.records.get(record_id)
        return self.apply(replace(record, weight=coerce_weight(weight)))
