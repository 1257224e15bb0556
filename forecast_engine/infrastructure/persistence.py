"""
Forecast Persistence - Storage collaborator for the forecast engine.

Holds, per project:
1. The forecast record set
2. The append-only acknowledgment log
3. The previous-method memo

The engine reads all three at session start and writes on every
mutation. Storage failures surface as PersistenceError so callers can
keep their in-memory state and resync later.
"""
import copy
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from forecast_engine.domain.entities import Acknowledgment, ForecastMethod, ForecastRecord
from forecast_engine.domain.exceptions import PersistenceError
from .repositories import (
    ForecastRecordRepository,
    AcknowledgmentRepository,
    PreviousMethodRepository,
)

logger = logging.getLogger(__name__)


class ForecastPersistence(ABC):
    """Key-value style store keyed by project."""

    @abstractmethod
    def load_records(self, project_id: str) -> List[ForecastRecord]:
        pass

    @abstractmethod
    def save_records(self, project_id: str, records: List[ForecastRecord]) -> None:
        """Upsert every given record, preserving list order as display order."""
        pass

    @abstractmethod
    def load_acknowledgments(self, project_id: str) -> List[Acknowledgment]:
        pass

    @abstractmethod
    def append_acknowledgment(self, project_id: str, acknowledgment: Acknowledgment) -> None:
        pass

    @abstractmethod
    def load_previous_methods(self, project_id: str) -> Dict[str, ForecastMethod]:
        pass

    @abstractmethod
    def save_previous_method(self, project_id: str, record_id: str, method: ForecastMethod) -> None:
        pass


class InMemoryForecastPersistence(ForecastPersistence):
    """Process-local persistence, used for tests and CLI dry runs."""

    def __init__(self):
        self._records: Dict[str, Dict[str, ForecastRecord]] = defaultdict(dict)
        self._acknowledgments: Dict[str, List[Acknowledgment]] = defaultdict(list)
        self._previous_methods: Dict[str, Dict[str, ForecastMethod]] = defaultdict(dict)

    def load_records(self, project_id: str) -> List[ForecastRecord]:
        return [copy.deepcopy(r) for r in self._records[project_id].values()]

    def save_records(self, project_id: str, records: List[ForecastRecord]) -> None:
        stored = self._records[project_id]
        for record in records:
            stored[record.id] = copy.deepcopy(record)

    def load_acknowledgments(self, project_id: str) -> List[Acknowledgment]:
        return list(self._acknowledgments[project_id])

    def append_acknowledgment(self, project_id: str, acknowledgment: Acknowledgment) -> None:
        self._acknowledgments[project_id].append(acknowledgment)

    def load_previous_methods(self, project_id: str) -> Dict[str, ForecastMethod]:
        return dict(self._previous_methods[project_id])

    def save_previous_method(self, project_id: str, record_id: str, method: ForecastMethod) -> None:
        self._previous_methods[project_id][record_id] = method


class SqlAlchemyForecastPersistence(ForecastPersistence):
    """
    Database-backed persistence using the forecast repositories.
    Each write commits its own transaction.
    """

    def __init__(self, session: Session):
        self.session = session
        self.records = ForecastRecordRepository(session)
        self.acknowledgments = AcknowledgmentRepository(session)
        self.previous_methods = PreviousMethodRepository(session)

    def _fail(self, operation: str, project_id: str, error: Exception) -> PersistenceError:
        self.records.rollback()
        logger.error(f"Forecast persistence {operation} failed for project {project_id}: {error}")
        return PersistenceError(operation, project_id, str(error))

    def load_records(self, project_id: str) -> List[ForecastRecord]:
        try:
            return [self.records.to_domain(e) for e in self.records.get_by_project(project_id)]
        except SQLAlchemyError as e:
            raise self._fail("load_records", project_id, e)

    def save_records(self, project_id: str, records: List[ForecastRecord]) -> None:
        try:
            for position, record in enumerate(records):
                self.records.save(project_id, record, position)
            self.records.commit()
        except SQLAlchemyError as e:
            raise self._fail("save_records", project_id, e)

    def load_acknowledgments(self, project_id: str) -> List[Acknowledgment]:
        try:
            return [
                self.acknowledgments.to_domain(e)
                for e in self.acknowledgments.get_by_project(project_id)
            ]
        except SQLAlchemyError as e:
            raise self._fail("load_acknowledgments", project_id, e)

    def append_acknowledgment(self, project_id: str, acknowledgment: Acknowledgment) -> None:
        try:
            self.acknowledgments.append(project_id, acknowledgment)
            self.acknowledgments.commit()
        except SQLAlchemyError as e:
            raise self._fail("append_acknowledgment", project_id, e)

    def load_previous_methods(self, project_id: str) -> Dict[str, ForecastMethod]:
        try:
            return self.previous_methods.get_map(project_id)
        except SQLAlchemyError as e:
            raise self._fail("load_previous_methods", project_id, e)

    def save_previous_method(self, project_id: str, record_id: str, method: ForecastMethod) -> None:
        try:
            self.previous_methods.set(project_id, record_id, method)
            self.previous_methods.commit()
        except SQLAlchemyError as e:
            raise self._fail("save_previous_method", project_id, e)
