"""
Acknowledgment State Machine - Gates finalization of AI forecast recommendations.

States per record:

    NONE ──open──▶ PENDING ──acknowledge──▶ ACKNOWLEDGED
                      │
                      └──────reject───────▶ REJECTED (method reverted)

While PENDING the review cannot be closed: request_close() raises
AcknowledgmentRequiredError until acknowledge() or reject() is called.
Outside PENDING the state is derived from the record's most recent
acknowledgment entry.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..entities.acknowledgment import Acknowledgment, AcknowledgmentState
from ..entities.forecast_record import ForecastMethod
from ..exceptions import AcknowledgmentRequiredError, InvalidAcknowledgmentStateError
from .acknowledgment_store import AcknowledgmentStore
from .rationale_provider import Rationale, RationaleProvider, StaticRationaleProvider
from .record_store import ForecastRecordStore

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASONING = "User rejected HBI forecast recommendation"


class AcknowledgmentStateMachine:
    """Per-record review workflow for switches to AI_FORECAST."""

    def __init__(
        self,
        acknowledgments: AcknowledgmentStore,
        records: ForecastRecordStore,
        rationale_provider: Optional[RationaleProvider] = None,
        default_previous_method: ForecastMethod = ForecastMethod.MANUAL,
        default_user: str = "system",
        rejection_reasoning: str = DEFAULT_REJECTION_REASONING,
    ):
        self.acknowledgments = acknowledgments
        self.records = records
        self.rationale_provider = rationale_provider or StaticRationaleProvider()
        self.default_previous_method = ForecastMethod.parse(default_previous_method)
        self.default_user = default_user
        self.rejection_reasoning = rejection_reasoning
        # Insertion-ordered set of records with an open review
        self._pending: Dict[str, None] = {}

    # =========================================================================
    # Queries
    # =========================================================================

    def state(self, record_id: str) -> AcknowledgmentState:
        if record_id in self._pending:
            return AcknowledgmentState.PENDING
        latest = self.acknowledgments.latest(record_id)
        if latest is None:
            return AcknowledgmentState.NONE
        return latest.resulting_state

    def is_pending(self, record_id: str) -> bool:
        return record_id in self._pending

    def pending_records(self) -> List[str]:
        return list(self._pending)

    def rationale(self, record_id: str) -> Rationale:
        return self.rationale_provider.explain(self.records.get(record_id))

    def revert_method(self, record_id: str) -> ForecastMethod:
        """Method a rejection would restore."""
        return self.acknowledgments.previous_method(record_id) or self.default_previous_method

    # =========================================================================
    # Transitions
    # =========================================================================

    def open(self, record_id: str) -> AcknowledgmentState:
        """Start a review for a record that just switched to AI_FORECAST."""
        self.records.get(record_id)
        self._pending[record_id] = None
        logger.info(f"AI forecast review opened for record {record_id}")
        return AcknowledgmentState.PENDING

    def restore_pending(self) -> List[str]:
        """
        Rebuild open reviews after a reload: every AI_FORECAST record
        without a standing acceptance is PENDING again.
        """
        self._pending = {}
        for record in self.records.records():
            if (
                record.method is ForecastMethod.AI_FORECAST
                and not self.acknowledgments.has_standing_acceptance(record.id)
            ):
                self._pending[record.id] = None
        if self._pending:
            logger.info(f"Restored {len(self._pending)} pending AI forecast review(s)")
        return list(self._pending)

    def request_close(self, record_id: str) -> AcknowledgmentState:
        """
        Ask to leave the review.

        Returns:
            The current (non-pending) state

        Raises:
            AcknowledgmentRequiredError: While the review is PENDING
        """
        if record_id in self._pending:
            logger.warning(f"Close blocked for record {record_id}: acknowledgment required")
            raise AcknowledgmentRequiredError(record_id)
        return self.state(record_id)

    def _require_pending(self, record_id: str) -> None:
        self.records.get(record_id)
        if record_id not in self._pending:
            state = self.state(record_id)
            logger.warning(f"Ignored acknowledgment action for record {record_id} in state {state.value}")
            raise InvalidAcknowledgmentStateError(record_id, state.value)

    def acknowledge(self, record_id: str, user_id: Optional[str] = None) -> Acknowledgment:
        """
        Accept the AI forecast. The record's method and distribution are
        left as they are.

        Raises:
            RecordNotFoundError: If the record does not exist
            InvalidAcknowledgmentStateError: If no review is pending
        """
        self._require_pending(record_id)
        rationale = self.rationale(record_id)

        acknowledgment = Acknowledgment(
            record_id=record_id,
            user_id=user_id or self.default_user,
            accepted=True,
            previous_method=self.revert_method(record_id),
            reasoning=rationale.reasoning,
            factors=tuple(rationale.factors),
            project_id=self.acknowledgments.project_id,
            timestamp=datetime.now(timezone.utc),
        )
        del self._pending[record_id]
        self.acknowledgments.append(acknowledgment)
        logger.info(f"AI forecast acknowledged for record {record_id} by {acknowledgment.user_id}")
        return acknowledgment

    def reject(self, record_id: str, user_id: Optional[str] = None) -> Acknowledgment:
        """
        Reject the AI forecast and restore the previous method, with a
        freshly calculated distribution.

        Raises:
            RecordNotFoundError: If the record does not exist
            InvalidAcknowledgmentStateError: If no review is pending
        """
        self._require_pending(record_id)
        previous_method = self.revert_method(record_id)
        rationale = self.rationale(record_id)

        rejection = Acknowledgment(
            record_id=record_id,
            user_id=user_id or self.default_user,
            accepted=False,
            previous_method=previous_method,
            reasoning=self.rejection_reasoning,
            factors=tuple(rationale.factors),
            project_id=self.acknowledgments.project_id,
            timestamp=datetime.now(timezone.utc),
        )
        del self._pending[record_id]
        self.records.set_method(record_id, previous_method)
        self.acknowledgments.append(rejection)
        logger.info(
            f"AI forecast rejected for record {record_id} by {rejection.user_id}; "
            f"reverted to {previous_method.value}"
        )
        return rejection
