"""
Forecast Session - Per-project entry point to the forecast engine.

Wires the record store, acknowledgment store, state machine and
orchestrator together, loads persisted state at session start and
writes after every mutation. Mutation entry points:

- upsert(record)            insert/update, method and weight changes
- edit_month(...)           single-cell override
- acknowledge / reject      resolve a pending AI forecast review
- commit(...)               save current forecast as the previous snapshot

Persistence failures never undo an in-memory change; the session is
flagged unsynced and resync() pushes the full state again.
"""
import logging
from datetime import date
from typing import List, Optional

from ..entities.acknowledgment import Acknowledgment, AcknowledgmentState
from ..entities.forecast_record import (
    ForecastMethod, ForecastRecord, ForecastType, rolling_month_keys,
)
from ..exceptions import PersistenceError
from .acknowledgment_state_machine import AcknowledgmentStateMachine
from .acknowledgment_store import AcknowledgmentStore
from .distribution_calculator import CurveParameters
from .method_change_orchestrator import MethodChangeOrchestrator, MethodChangeResult
from .rationale_provider import RationaleProvider, StaticRationaleProvider
from .record_store import ForecastRecordStore
from .variance_engine import ForecastTotals

logger = logging.getLogger(__name__)


class ForecastSession:
    """Forecast engine state for one project."""

    def __init__(
        self,
        project_id: str = "default",
        persistence=None,
        config=None,
        as_of: Optional[date] = None,
        rationale_provider: Optional[RationaleProvider] = None,
    ):
        if config is None:
            from forecast_engine.config import get_config
            config = get_config()

        self.project_id = project_id
        self.persistence = persistence
        self.config = config
        self._unsynced = False

        self.records = ForecastRecordStore(
            project_id=project_id,
            month_keys=rolling_month_keys(as_of, config.month_count),
            curve_params=CurveParameters.from_config(config),
            sum_tolerance=config.sum_tolerance,
        )
        self.acknowledgments = AcknowledgmentStore(project_id, persistence)
        self.workflow = AcknowledgmentStateMachine(
            self.acknowledgments,
            self.records,
            rationale_provider=rationale_provider or StaticRationaleProvider(config),
            default_previous_method=ForecastMethod.parse(config.default_previous_method),
            default_user=config.default_user,
            rejection_reasoning=config.rejection_reasoning,
        )
        self.orchestrator = MethodChangeOrchestrator(
            self.records, self.acknowledgments, self.workflow
        )

    @classmethod
    def open(
        cls,
        project_id: str,
        persistence=None,
        config=None,
        as_of: Optional[date] = None,
        rationale_provider: Optional[RationaleProvider] = None,
    ) -> "ForecastSession":
        """Create a session and load its persisted state."""
        session = cls(project_id, persistence, config, as_of, rationale_provider)
        session.load()
        return session

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> None:
        """
        Read records, acknowledgments and memo, then rebuild pending reviews.

        Raises:
            PersistenceError: If the collaborator cannot be read
        """
        if self.persistence is None:
            return
        self.records.load(self.persistence.load_records(self.project_id))
        self.acknowledgments.load()
        self.workflow.restore_pending()
        logger.info(
            f"Loaded forecast session for project {self.project_id}: "
            f"{len(self.records)} record(s), {len(self.workflow.pending_records())} pending review(s)"
        )

    def _save_records(self) -> None:
        if self.persistence is None:
            return
        try:
            self.persistence.save_records(self.project_id, self.records.records())
        except PersistenceError as e:
            self._unsynced = True
            logger.warning(f"Forecast records not persisted, will resync: {e.message}")

    @property
    def unsynced(self) -> bool:
        return self._unsynced or self.acknowledgments.unsynced

    def resync(self) -> bool:
        """
        Push the full in-memory state to persistence.

        Returns:
            True if the collaborator accepted every write
        """
        if self.persistence is None:
            return True
        try:
            self.persistence.save_records(self.project_id, self.records.records())
            self.acknowledgments.sync()
        except PersistenceError as e:
            logger.warning(f"Resync failed for project {self.project_id}: {e.message}")
            return False
        self._unsynced = False
        return True

    # =========================================================================
    # Mutations
    # =========================================================================

    def upsert(self, record: ForecastRecord) -> MethodChangeResult:
        """Insert or update a record; switches to AI_FORECAST open a review."""
        result = self.orchestrator.apply(record)
        self._save_records()
        return result

    def set_method(self, record_id: str, method: ForecastMethod) -> MethodChangeResult:
        result = self.orchestrator.change_method(record_id, method)
        self._save_records()
        return result

    def set_weight(self, record_id: str, weight: int) -> MethodChangeResult:
        result = self.orchestrator.change_weight(record_id, weight)
        self._save_records()
        return result

    def edit_month(self, record_id: str, month_key: str, amount: float) -> ForecastRecord:
        record = self.records.edit_month(record_id, month_key, amount)
        self._save_records()
        return record

    def acknowledge(self, record_id: str, user_id: Optional[str] = None) -> Acknowledgment:
        return self.workflow.acknowledge(record_id, user_id)

    def reject(self, record_id: str, user_id: Optional[str] = None) -> Acknowledgment:
        rejection = self.workflow.reject(record_id, user_id)
        self._save_records()
        return rejection

    def request_close(self, record_id: str) -> AcknowledgmentState:
        return self.workflow.request_close(record_id)

    def commit(self, record_ids: Optional[List[str]] = None) -> List[str]:
        committed = self.records.commit(record_ids)
        self._save_records()
        return committed

    def roll_forward(self, as_of: Optional[date] = None) -> List[str]:
        """Move the forecast window to start at the as_of month."""
        keys = self.records.roll_forward(as_of)
        self._save_records()
        return keys

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, record_id: str) -> ForecastRecord:
        return self.records.get(record_id)

    def list_records(self, forecast_type: Optional[ForecastType] = None) -> List[ForecastRecord]:
        return self.records.records(forecast_type)

    def totals(self, forecast_type: Optional[ForecastType] = None) -> ForecastTotals:
        return self.records.totals(forecast_type)

    def state(self, record_id: str) -> AcknowledgmentState:
        self.records.get(record_id)
        return self.workflow.state(record_id)

    def review(self, record_id: str) -> dict:
        """Review panel contents: state, rationale and decision history."""
        record = self.records.get(record_id)
        return {
            'record_id': record_id,
            'display_name': record.display_name,
            'method': record.method.value,
            'state': self.workflow.state(record_id).value,
            'close_allowed': not self.workflow.is_pending(record_id),
            'revert_method': self.workflow.revert_method(record_id).value,
            'rationale': self.workflow.rationale(record_id).to_dict(),
            'history': [a.to_dict() for a in self.acknowledgments.entries(record_id)],
        }

    def snapshot(self) -> dict:
        return self.records.snapshot()
