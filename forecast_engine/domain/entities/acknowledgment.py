"""
Acknowledgment Entity - Immutable audit record of an AI forecast decision.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Tuple

from .forecast_record import ForecastMethod


class AcknowledgmentState(str, Enum):
    """Review workflow state for a single record."""
    NONE = "NONE"                  # No review required
    PENDING = "PENDING"            # Review open, exit blocked
    ACKNOWLEDGED = "ACKNOWLEDGED"  # AI forecast accepted
    REJECTED = "REJECTED"          # AI forecast rejected, method reverted


@dataclass(frozen=True)
class Acknowledgment:
    """
    Append-only record of a user's accept/reject decision.

    Attributes:
        record_id: Forecast record the decision applies to
        user_id: User who made the decision
        accepted: True for acknowledge, False for reject
        previous_method: Method active before the switch to AI_FORECAST
        reasoning: Rationale shown to the user when deciding
        factors: Factors listed with the rationale
        project_id: Owning project
        timestamp: Decision time (UTC)
    """

    record_id: str
    user_id: str
    accepted: bool
    previous_method: ForecastMethod
    reasoning: str = ""
    factors: Tuple[str, ...] = ()
    project_id: str = "default"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def resulting_state(self) -> AcknowledgmentState:
        return AcknowledgmentState.ACKNOWLEDGED if self.accepted else AcknowledgmentState.REJECTED

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'record_id': self.record_id,
            'user_id': self.user_id,
            'accepted': self.accepted,
            'previous_method': self.previous_method.value,
            'reasoning': self.reasoning,
            'factors': list(self.factors),
            'project_id': self.project_id,
            'timestamp': self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Acknowledgment":
        timestamp = data.get('timestamp')
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            record_id=str(data['record_id']),
            user_id=str(data.get('user_id') or ""),
            accepted=bool(data['accepted']),
            previous_method=ForecastMethod.parse(data.get('previous_method') or ForecastMethod.MANUAL),
            reasoning=data.get('reasoning') or "",
            factors=tuple(data.get('factors') or ()),
            project_id=data.get('project_id', 'default'),
            timestamp=timestamp or datetime.now(timezone.utc),
        )
