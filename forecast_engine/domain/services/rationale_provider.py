"""
Rationale Provider - Explanations attached to AI forecast recommendations.

The static provider looks up templates by CSI division (Draw lines) or
cost code prefix (GC/GR lines) and falls back to a default rationale.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..entities.forecast_record import ForecastRecord, ForecastType


DEFAULT_REASONING = "AI-powered analysis based on historical data and market conditions."
DEFAULT_FACTORS = ["Historical performance", "Market trends", "Weather patterns"]


@dataclass
class Rationale:
    """Explanation shown to the user and copied into acknowledgments."""
    reasoning: str
    factors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {'reasoning': self.reasoning, 'factors': list(self.factors)}


class RationaleProvider(ABC):
    """Source of explanations for AI forecast recommendations."""

    @abstractmethod
    def explain(self, record: ForecastRecord) -> Rationale:
        """Return the rationale for a record's AI forecast."""
        pass


class StaticRationaleProvider(RationaleProvider):
    """Template lookup backed by the rationale section of the config."""

    def __init__(self, config=None):
        self.config = config

    def _from_template(self, template: Optional[dict]) -> Optional[Rationale]:
        if not template or not template.get("reasoning"):
            return None
        return Rationale(
            reasoning=template["reasoning"],
            factors=list(template.get("factors", [])),
        )

    def explain(self, record: ForecastRecord) -> Rationale:
        if self.config is not None:
            template = None
            if record.forecast_type is ForecastType.DRAW and record.csi_division:
                template = self.config.get_division_rationale(record.csi_division)
            elif record.forecast_type is ForecastType.GC_GR and record.cost_code:
                template = self.config.get_cost_code_rationale(record.cost_code)

            rationale = (
                self._from_template(template)
                or self._from_template(self.config.default_rationale)
            )
            if rationale:
                return rationale

        return Rationale(reasoning=DEFAULT_REASONING, factors=list(DEFAULT_FACTORS))
