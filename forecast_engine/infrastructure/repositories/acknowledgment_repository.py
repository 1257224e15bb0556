"""
Acknowledgment Repositories - Data access for the AI forecast audit trail.

The acknowledgment log is append-only: this repository exposes no
update or delete operations for it.
"""
import json
from datetime import timezone
from typing import Dict
from sqlalchemy.orm import Session

from forecast_engine.models import ForecastAcknowledgmentEntity, ForecastPreviousMethodEntity
from forecast_engine.domain.entities import Acknowledgment, ForecastMethod
from .base_repository import BaseRepository


class AcknowledgmentRepository(BaseRepository[ForecastAcknowledgmentEntity]):
    """Repository for acknowledgment log entries."""

    def __init__(self, session: Session):
        super().__init__(session, ForecastAcknowledgmentEntity)

    def exists(self, project_id: str, record_id: str) -> bool:
        return self.session.query(ForecastAcknowledgmentEntity).filter(
            ForecastAcknowledgmentEntity.project_id == project_id,
            ForecastAcknowledgmentEntity.record_id == record_id,
        ).first() is not None

    def append(self, project_id: str, acknowledgment: Acknowledgment) -> ForecastAcknowledgmentEntity:
        """Add a log entry (not yet committed)."""
        # SQLite DateTime columns are naive; store UTC
        timestamp = acknowledgment.timestamp
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)

        entity = ForecastAcknowledgmentEntity(
            project_id=project_id,
            record_id=acknowledgment.record_id,
            user_id=acknowledgment.user_id,
            accepted=acknowledgment.accepted,
            previous_method=acknowledgment.previous_method.value,
            reasoning=acknowledgment.reasoning,
            factors=json.dumps(list(acknowledgment.factors)),
            acknowledged_at=timestamp,
        )
        return self.add(entity)

    @staticmethod
    def to_domain(entity: ForecastAcknowledgmentEntity) -> Acknowledgment:
        timestamp = entity.acknowledged_at
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return Acknowledgment(
            record_id=entity.record_id,
            user_id=entity.user_id,
            accepted=entity.accepted,
            previous_method=ForecastMethod.parse(entity.previous_method),
            reasoning=entity.reasoning or "",
            factors=tuple(json.loads(entity.factors or "[]")),
            project_id=entity.project_id,
            timestamp=timestamp,
        )


class PreviousMethodRepository(BaseRepository[ForecastPreviousMethodEntity]):
    """Repository for the record id -> previous method memo."""

    def __init__(self, session: Session):
        super().__init__(session, ForecastPreviousMethodEntity)

    def exists(self, project_id: str, record_id: str) -> bool:
        return self._get(project_id, record_id) is not None

    def _get(self, project_id: str, record_id: str):
        return self.session.query(ForecastPreviousMethodEntity).filter(
            ForecastPreviousMethodEntity.project_id == project_id,
            ForecastPreviousMethodEntity.record_id == record_id,
        ).first()

    def get_map(self, project_id: str) -> Dict[str, ForecastMethod]:
        return {
            e.record_id: ForecastMethod.parse(e.method)
            for e in self.get_by_project(project_id)
        }

    def set(self, project_id: str, record_id: str, method: ForecastMethod) -> ForecastPreviousMethodEntity:
        """Insert or overwrite the memo entry (not yet committed)."""
        entity = self._get(project_id, record_id)
        if entity is None:
            entity = self.add(ForecastPreviousMethodEntity(
                project_id=project_id, record_id=record_id, method=method.value
            ))
        else:
            entity.method = method.value
        return entity
