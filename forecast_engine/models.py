"""
Database models and SQLAlchemy setup for the forecast engine.

Persists, per project, the forecast record set, the acknowledgment log
and the previous-method memo. Monthly distributions are stored as JSON
maps of month key to amount.
"""
from datetime import datetime
from sqlalchemy import (
    create_engine, Column, Integer, String, Float, Boolean,
    DateTime, Text, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, sessionmaker

from forecast_engine.config import get_config


def connect_args_for(url: str) -> dict:
    """Driver options for a database URL; SQLite connections are shared across threads."""
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


DATABASE_URL = get_config().database_url
engine = create_engine(DATABASE_URL, connect_args=connect_args_for(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class ForecastRecordEntity(Base):
    """A forecast line item (GC/GR cost code or Draw CSI code)."""
    __tablename__ = "forecast_records"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    record_id = Column(String(100), nullable=False)
    position = Column(Integer, default=0)  # Display order within the project
    forecast_type = Column(String(10), nullable=False, index=True)  # GC_GR, DRAW
    cost_code = Column(String(50), nullable=True)
    cost_code_description = Column(String(200), nullable=True)
    csi_code = Column(String(50), nullable=True)
    csi_description = Column(String(200), nullable=True)
    budget = Column(Float, default=0.0)
    cost_to_complete = Column(Float, default=0.0)
    estimated_at_completion = Column(Float, default=0.0)
    method = Column(String(20), default="MANUAL")
    weight = Column(Integer, default=10)
    monthly_distribution = Column(Text, nullable=True)           # JSON
    previous_monthly_distribution = Column(Text, nullable=True)  # JSON
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('project_id', 'record_id', name='uq_forecast_record'),
    )


class ForecastAcknowledgmentEntity(Base):
    """
    Append-only audit log of AI forecast accept/reject decisions.
    Rows are never updated or deleted.
    """
    __tablename__ = "forecast_acknowledgments"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    record_id = Column(String(100), nullable=False, index=True)
    user_id = Column(String(100), nullable=False)
    accepted = Column(Boolean, nullable=False)
    previous_method = Column(String(20), nullable=False)
    reasoning = Column(Text, nullable=True)
    factors = Column(Text, nullable=True)  # JSON list
    acknowledged_at = Column(DateTime, nullable=False)


class ForecastPreviousMethodEntity(Base):
    """Method active before a record's most recent switch to AI_FORECAST."""
    __tablename__ = "forecast_previous_methods"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    record_id = Column(String(100), nullable=False)
    method = Column(String(20), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('project_id', 'record_id', name='uq_forecast_previous_method'),
    )


def init_db():
    """Initialize the database and create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Database session dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
