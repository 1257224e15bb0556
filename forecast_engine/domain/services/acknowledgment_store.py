"""
Acknowledgment Store - Audit log and previous-method memo for one project.

The log is append-only. Writes go to the persistence collaborator
immediately; a failed write is logged and leaves the in-memory state in
place, flagging the store as unsynced until sync() succeeds. While
unsynced, new log entries are queued behind the failed one so the
persisted log keeps append order.
"""
import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from ..entities.acknowledgment import Acknowledgment
from ..entities.forecast_record import ForecastMethod
from ..exceptions import PersistenceError

if TYPE_CHECKING:
    from forecast_engine.infrastructure.persistence import ForecastPersistence

logger = logging.getLogger(__name__)


class AcknowledgmentStore:
    """
    Holds every Acknowledgment for a project plus the PreviousMethodMemo.

    Entries are never edited or removed. The memo maps a record id to the
    method that was active right before its latest switch to AI_FORECAST.
    """

    def __init__(self, project_id: str = "default", persistence: Optional["ForecastPersistence"] = None):
        self.project_id = project_id
        self.persistence = persistence
        self._log: List[Acknowledgment] = []
        self._previous_methods: Dict[str, ForecastMethod] = {}
        self._pending: List[Acknowledgment] = []
        self.unsynced = False

    def load(self) -> None:
        """
        Read the log and memo from persistence.

        Raises:
            PersistenceError: If the collaborator cannot be read
        """
        if self.persistence is None:
            return
        self._log = list(self.persistence.load_acknowledgments(self.project_id))
        self._pending = []
        self._previous_methods = dict(self.persistence.load_previous_methods(self.project_id))
        logger.debug(
            f"Loaded {len(self._log)} acknowledgment(s) and "
            f"{len(self._previous_methods)} previous method(s) for project {self.project_id}"
        )

    def _write(self, operation: str, write: Callable[[], None]) -> bool:
        if self.persistence is None:
            return True
        try:
            write()
        except PersistenceError as e:
            self.unsynced = True
            logger.warning(f"Acknowledgment store {operation} not persisted, will resync: {e.message}")
            return False
        return True

    # =========================================================================
    # Acknowledgment Log
    # =========================================================================

    def append(self, acknowledgment: Acknowledgment) -> Acknowledgment:
        """Append an entry to the log and persist it, or queue it while unsynced."""
        self._log.append(acknowledgment)
        if self._pending:
            self._pending.append(acknowledgment)
            logger.debug(f"Queued acknowledgment for {acknowledgment.record_id} until resync")
            return acknowledgment
        persisted = self._write(
            "append",
            lambda: self.persistence.append_acknowledgment(self.project_id, acknowledgment),
        )
        if not persisted:
            self._pending.append(acknowledgment)
        return acknowledgment

    def entries(self, record_id: Optional[str] = None) -> List[Acknowledgment]:
        """Log entries in append order, optionally for one record."""
        if record_id is None:
            return list(self._log)
        return [a for a in self._log if a.record_id == record_id]

    def latest(self, record_id: str) -> Optional[Acknowledgment]:
        """Most recent entry for a record."""
        for acknowledgment in reversed(self._log):
            if acknowledgment.record_id == record_id:
                return acknowledgment
        return None

    def has_standing_acceptance(self, record_id: str) -> bool:
        """True when the record's most recent decision was an acceptance."""
        latest = self.latest(record_id)
        return latest is not None and latest.accepted

    @property
    def pending(self) -> List[Acknowledgment]:
        """Entries not yet persisted, in append order."""
        return list(self._pending)

    # =========================================================================
    # Previous Method Memo
    # =========================================================================

    def remember_previous_method(self, record_id: str, method: ForecastMethod) -> None:
        self._previous_methods[record_id] = method
        self._write(
            "save_previous_method",
            lambda: self.persistence.save_previous_method(self.project_id, record_id, method),
        )

    def previous_method(self, record_id: str) -> Optional[ForecastMethod]:
        return self._previous_methods.get(record_id)

    @property
    def previous_methods(self) -> Dict[str, ForecastMethod]:
        return dict(self._previous_methods)

    # =========================================================================
    # Resync
    # =========================================================================

    def sync(self) -> None:
        """
        Flush queued log entries in order and rewrite the memo.

        Raises:
            PersistenceError: If the collaborator is still failing
        """
        if self.persistence is None:
            self.unsynced = False
            return
        while self._pending:
            self.persistence.append_acknowledgment(self.project_id, self._pending[0])
            self._pending.pop(0)
        for record_id, method in self._previous_methods.items():
            self.persistence.save_previous_method(self.project_id, record_id, method)
        self.unsynced = False
        logger.info(f"Acknowledgment store resynced for project {self.project_id}")
