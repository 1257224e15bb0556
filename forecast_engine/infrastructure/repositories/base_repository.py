"""
Base Repository - Abstract repository pattern implementation.

Provides common data access operations shared by the forecast repositories.
"""
from abc import ABC, abstractmethod
from typing import Generic, TypeVar, List, Type
from sqlalchemy.orm import Session

from forecast_engine.models import Base

T = TypeVar('T', bound=Base)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common data access operations.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    def get_by_project(self, project_id: str) -> List[T]:
        """
        Retrieve all entities belonging to a project, in insertion order.

        Args:
            project_id: Project identifier

        Returns:
            List of entities
        """
        return self.session.query(self.model_class).filter(
            self.model_class.project_id == project_id
        ).order_by(self.model_class.id).all()

    def count(self, project_id: str) -> int:
        """Count entities belonging to a project."""
        return self.session.query(self.model_class).filter(
            self.model_class.project_id == project_id
        ).count()

    def add(self, entity: T) -> T:
        """
        Add a new entity to the session.

        Args:
            entity: Entity to add

        Returns:
            The added entity
        """
        self.session.add(entity)
        return entity

    def commit(self) -> None:
        """Commit the current transaction."""
        self.session.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.session.rollback()

    @abstractmethod
    def exists(self, project_id: str, record_id: str) -> bool:
        """
        Check if an entity exists for a project record.

        Args:
            project_id: Project identifier
            record_id: Forecast record identifier

        Returns:
            True if entity exists, False otherwise
        """
        pass
