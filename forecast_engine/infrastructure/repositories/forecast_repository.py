"""
Forecast Record Repository - Data access layer for forecast line items.

Maps between ForecastRecordEntity rows and ForecastRecord domain objects.
Distributions are serialized as JSON objects, which preserve month order.
"""
import json
from typing import List, Optional
from sqlalchemy.orm import Session

from forecast_engine.models import ForecastRecordEntity
from forecast_engine.domain.entities import ForecastRecord
from .base_repository import BaseRepository


class ForecastRecordRepository(BaseRepository[ForecastRecordEntity]):
    """Repository for forecast records, keyed by (project_id, record_id)."""

    def __init__(self, session: Session):
        super().__init__(session, ForecastRecordEntity)

    def exists(self, project_id: str, record_id: str) -> bool:
        return self.get_by_record_id(project_id, record_id) is not None

    def get_by_record_id(self, project_id: str, record_id: str) -> Optional[ForecastRecordEntity]:
        return self.session.query(ForecastRecordEntity).filter(
            ForecastRecordEntity.project_id == project_id,
            ForecastRecordEntity.record_id == record_id,
        ).first()

    def get_by_project(self, project_id: str) -> List[ForecastRecordEntity]:
        """All records for a project in display order."""
        return self.session.query(ForecastRecordEntity).filter(
            ForecastRecordEntity.project_id == project_id
        ).order_by(ForecastRecordEntity.position, ForecastRecordEntity.id).all()

    def save(self, project_id: str, record: ForecastRecord, position: int = 0) -> ForecastRecordEntity:
        """
        Insert or update the row for a domain record.

        Args:
            project_id: Owning project
            record: Domain record to persist
            position: Display order within the project

        Returns:
            The persisted entity (not yet committed)
        """
        entity = self.get_by_record_id(project_id, record.id)
        if entity is None:
            entity = ForecastRecordEntity(project_id=project_id, record_id=record.id)
            self.add(entity)

        entity.position = position
        entity.forecast_type = record.forecast_type.value
        entity.cost_code = record.cost_code
        entity.cost_code_description = record.cost_code_description
        entity.csi_code = record.csi_code
        entity.csi_description = record.csi_description
        entity.budget = record.budget
        entity.cost_to_complete = record.cost_to_complete
        entity.estimated_at_completion = record.estimated_at_completion
        entity.method = record.method.value
        entity.weight = record.weight
        entity.monthly_distribution = json.dumps(record.monthly_distribution)
        entity.previous_monthly_distribution = json.dumps(record.previous_monthly_distribution)
        return entity

    @staticmethod
    def to_domain(entity: ForecastRecordEntity) -> ForecastRecord:
        """Convert a row to a domain record."""
        return ForecastRecord(
            id=entity.record_id,
            forecast_type=entity.forecast_type,
            project_id=entity.project_id,
            cost_code=entity.cost_code,
            cost_code_description=entity.cost_code_description or "",
            csi_code=entity.csi_code,
            csi_description=entity.csi_description or "",
            budget=entity.budget,
            cost_to_complete=entity.cost_to_complete,
            estimated_at_completion=entity.estimated_at_completion,
            method=entity.method,
            weight=entity.weight,
            monthly_distribution=json.loads(entity.monthly_distribution or "{}"),
            previous_monthly_distribution=json.loads(entity.previous_monthly_distribution or "{}"),
        )
