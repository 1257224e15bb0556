"""
Forecast API Endpoints - Forecast records, totals and AI forecast reviews.

Implements:
- GET    /api/v1/projects/{project_id}/forecasts - List records
- PUT    /api/v1/projects/{project_id}/forecasts/{record_id} - Upsert record
- PATCH  /api/v1/projects/{project_id}/forecasts/{record_id}/months/{month_key} - Edit a month
- GET    /api/v1/projects/{project_id}/forecasts/totals - Footer totals
- GET    /api/v1/projects/{project_id}/forecasts/{record_id}/review - Review state
- POST   /api/v1/projects/{project_id}/forecasts/{record_id}/acknowledge - Accept AI forecast
- POST   /api/v1/projects/{project_id}/forecasts/{record_id}/reject - Reject AI forecast
- POST   /api/v1/projects/{project_id}/forecasts/{record_id}/close - Leave the review
- POST   /api/v1/projects/{project_id}/forecasts/commit - Save previous snapshot
- GET    /api/v1/projects/{project_id}/forecasts/acknowledgments - Audit log
- GET    /api/v1/projects/{project_id}/forecasts/export.csv - CSV export
"""
from typing import Dict, List, Optional, Union
from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from forecast_engine.models import get_db
from forecast_engine.infrastructure import SqlAlchemyForecastPersistence
from forecast_engine.domain.entities import ForecastRecord, ForecastType
from forecast_engine.domain.services import ForecastSession, ForecastExportService
from forecast_engine.domain.exceptions import DomainError, PersistenceError

router = APIRouter()

ERROR_STATUS = {
    "RECORD_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "UNKNOWN_MONTH": status.HTTP_404_NOT_FOUND,
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "RECORD_LOCKED": status.HTTP_409_CONFLICT,
    "ACKNOWLEDGMENT_REQUIRED": status.HTTP_409_CONFLICT,
    "INVALID_ACKNOWLEDGMENT_STATE": status.HTTP_409_CONFLICT,
    "PERSISTENCE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    "INVARIANT_VIOLATION": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _http_error(e: DomainError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(e.code, status.HTTP_400_BAD_REQUEST),
        detail={"code": e.code, "message": e.message},
    )


def get_forecast_session(project_id: str, db: Session = Depends(get_db)) -> ForecastSession:
    """Open the project's forecast session from the database."""
    try:
        return ForecastSession.open(project_id, SqlAlchemyForecastPersistence(db))
    except PersistenceError as e:
        raise _http_error(e)


def _parse_type(forecast_type: Optional[str]) -> Optional[ForecastType]:
    if forecast_type is None:
        return None
    try:
        return ForecastType.parse(forecast_type)
    except DomainError as e:
        raise _http_error(e)


# =============================================================================
# Pydantic Models
# =============================================================================

class ForecastRecordUpsert(BaseModel):
    """Request model for creating or updating a forecast record."""
    forecast_type: str = Field(..., description="GC_GR or DRAW")
    cost_code: Optional[str] = Field(None, max_length=50, description="GC/GR cost code")
    cost_code_description: Optional[str] = Field(None, max_length=200)
    csi_code: Optional[str] = Field(None, max_length=50, description="CSI MasterFormat code")
    csi_description: Optional[str] = Field(None, max_length=200)
    budget: Union[float, str, None] = Field(0.0, description="Invalid or negative values become 0")
    cost_to_complete: Union[float, str, None] = 0.0
    estimated_at_completion: Union[float, str, None] = 0.0
    method: Optional[str] = Field(
        None, description="MANUAL, LINEAR, S_CURVE, BELL_CURVE, AI_FORECAST; omitted keeps the stored or default method"
    )
    weight: Union[int, float, str, None] = Field(
        None, description="1-10, non-numeric values become 1; omitted keeps the stored or default weight"
    )
    monthly_distribution: Optional[Dict[str, float]] = Field(
        None, description="Month edits; omitted to keep the stored distribution"
    )


class MonthEdit(BaseModel):
    """Request model for a single-month override."""
    amount: float


class ReviewDecision(BaseModel):
    """Request model for acknowledge/reject."""
    user_id: Optional[str] = Field(None, max_length=100)


class CommitRequest(BaseModel):
    """Request model for committing the previous-forecast snapshot."""
    record_ids: Optional[List[str]] = None


class ForecastRecordResponse(BaseModel):
    """Response model for a forecast record with derived fields."""
    id: str
    project_id: str
    forecast_type: str
    cost_code: Optional[str]
    cost_code_description: str
    csi_code: Optional[str]
    csi_description: str
    budget: float
    cost_to_complete: float
    estimated_at_completion: float
    variance: float
    method: str
    weight: int
    monthly_distribution: Dict[str, float]
    previous_monthly_distribution: Dict[str, float]
    monthly_variance: Dict[str, float]


class MethodChangeResponse(BaseModel):
    """Response for an upsert."""
    record: ForecastRecordResponse
    previous_method: Optional[str]
    method_changed: bool
    review_opened: bool
    state: str


class TotalsResponse(BaseModel):
    """Footer totals for a forecast table."""
    budget: float
    cost_to_complete: float
    estimated_at_completion: float
    variance: float
    record_count: int
    monthly_actual: Dict[str, float]
    monthly_previous: Dict[str, float]
    monthly_variance: Dict[str, float]


class AcknowledgmentResponse(BaseModel):
    """Audit log entry."""
    record_id: str
    user_id: str
    accepted: bool
    previous_method: str
    reasoning: str
    factors: List[str]
    project_id: str
    timestamp: str


class ReviewResponse(BaseModel):
    """Review panel state for a record."""
    record_id: str
    display_name: str
    method: str
    state: str
    close_allowed: bool
    revert_method: str
    rationale: Dict[str, Union[str, List[str]]]
    history: List[AcknowledgmentResponse]


# =============================================================================
# Collection Endpoints
# =============================================================================

@router.get(
    "/{project_id}/forecasts",
    response_model=List[ForecastRecordResponse],
    summary="List forecast records",
)
def list_forecasts(
    forecast_type: Optional[str] = Query(None, description="GC_GR or DRAW"),
    session: ForecastSession = Depends(get_forecast_session),
):
    """List a project's forecast records, optionally for one forecast type."""
    return [r.to_dict() for r in session.list_records(_parse_type(forecast_type))]


@router.get(
    "/{project_id}/forecasts/totals",
    response_model=TotalsResponse,
    summary="Forecast totals",
    description="Budget, summary and monthly column totals across records",
)
def get_totals(
    forecast_type: Optional[str] = Query(None, description="GC_GR or DRAW"),
    session: ForecastSession = Depends(get_forecast_session),
):
    return session.totals(_parse_type(forecast_type)).to_dict()


@router.get(
    "/{project_id}/forecasts/acknowledgments",
    response_model=List[AcknowledgmentResponse],
    summary="AI forecast acknowledgment log",
)
def list_acknowledgments(
    record_id: Optional[str] = Query(None),
    session: ForecastSession = Depends(get_forecast_session),
):
    return [a.to_dict() for a in session.acknowledgments.entries(record_id)]


@router.get(
    "/{project_id}/forecasts/export.csv",
    summary="Export forecast grid as CSV",
)
def export_forecasts(
    forecast_type: Optional[str] = Query(None, description="GC_GR or DRAW"),
    session: ForecastSession = Depends(get_forecast_session),
):
    exporter = ForecastExportService(session.snapshot())
    csv_text = exporter.to_csv(forecast_type=_parse_type(forecast_type))
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=forecast_{session.project_id}.csv"},
    )


@router.post(
    "/{project_id}/forecasts/commit",
    summary="Save the current forecast as the previous forecast",
)
def commit_forecasts(
    request: CommitRequest,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        committed = session.commit(request.record_ids)
    except DomainError as e:
        raise _http_error(e)
    return {"committed": committed, "unsynced": session.unsynced}


# =============================================================================
# Record Endpoints
# =============================================================================

@router.get(
    "/{project_id}/forecasts/{record_id}",
    response_model=ForecastRecordResponse,
    summary="Get forecast record",
)
def get_forecast(
    record_id: str,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        return session.get(record_id).to_dict()
    except DomainError as e:
        raise _http_error(e)


@router.put(
    "/{project_id}/forecasts/{record_id}",
    response_model=MethodChangeResponse,
    summary="Create or update a forecast record",
    description=(
        "Recalculates the distribution when method, weight or budget change. "
        "Switching to AI_FORECAST opens a review that must be acknowledged or rejected."
    ),
)
def upsert_forecast(
    record_id: str,
    data: ForecastRecordUpsert,
    session: ForecastSession = Depends(get_forecast_session),
):
    existing = session.records.find(record_id)
    if data.monthly_distribution is not None:
        distribution = data.monthly_distribution
    else:
        distribution = dict(existing.monthly_distribution) if existing else {}

    defaults = session.config
    method = data.method or (existing.method if existing else defaults.default_method)
    weight = data.weight if data.weight is not None else (
        existing.weight if existing else defaults.default_weight
    )

    try:
        record = ForecastRecord(
            id=record_id,
            forecast_type=data.forecast_type,
            cost_code=data.cost_code,
            cost_code_description=data.cost_code_description or "",
            csi_code=data.csi_code,
            csi_description=data.csi_description or "",
            budget=data.budget,
            cost_to_complete=data.cost_to_complete,
            estimated_at_completion=data.estimated_at_completion,
            method=method,
            weight=weight,
            monthly_distribution=distribution,
        )
        return session.upsert(record).to_dict()
    except DomainError as e:
        raise _http_error(e)


@router.patch(
    "/{project_id}/forecasts/{record_id}/months/{month_key}",
    response_model=ForecastRecordResponse,
    summary="Override a single month",
)
def edit_month(
    record_id: str,
    month_key: str,
    edit: MonthEdit,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        return session.edit_month(record_id, month_key, edit.amount).to_dict()
    except DomainError as e:
        raise _http_error(e)


# =============================================================================
# Review Endpoints
# =============================================================================

@router.get(
    "/{project_id}/forecasts/{record_id}/review",
    response_model=ReviewResponse,
    summary="AI forecast review state",
)
def get_review(
    record_id: str,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        return session.review(record_id)
    except DomainError as e:
        raise _http_error(e)


@router.post(
    "/{project_id}/forecasts/{record_id}/acknowledge",
    response_model=AcknowledgmentResponse,
    summary="Acknowledge the AI forecast",
)
def acknowledge_forecast(
    record_id: str,
    decision: ReviewDecision,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        return session.acknowledge(record_id, decision.user_id).to_dict()
    except DomainError as e:
        raise _http_error(e)


@router.post(
    "/{project_id}/forecasts/{record_id}/reject",
    response_model=AcknowledgmentResponse,
    summary="Reject the AI forecast and revert to the previous method",
)
def reject_forecast(
    record_id: str,
    decision: ReviewDecision,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        return session.reject(record_id, decision.user_id).to_dict()
    except DomainError as e:
        raise _http_error(e)


@router.post(
    "/{project_id}/forecasts/{record_id}/close",
    summary="Leave the AI forecast review",
    description="Returns 409 ACKNOWLEDGMENT_REQUIRED while the review is pending.",
)
def close_review(
    record_id: str,
    session: ForecastSession = Depends(get_forecast_session),
):
    try:
        session.get(record_id)
        state = session.request_close(record_id)
    except DomainError as e:
        raise _http_error(e)
    return {"record_id": record_id, "closed": True, "state": state.value}
