"""
Forecast Record Entity - A single forecast line item.

A record is either a GC/GR line (keyed by cost code) or a Draw line
(keyed by CSI code). Both carry a budget, a distribution method and a
rolling 12-month distribution compared against the last committed one.
"""
import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exceptions import ValidationError


MIN_WEIGHT = 1
MAX_WEIGHT = 10
DEFAULT_WEIGHT = 10


class ForecastType(str, Enum):
    """Budget classification of a forecast line."""
    GC_GR = "GC_GR"    # General Conditions & General Requirements
    DRAW = "DRAW"      # CSI-coded disbursement category

    @classmethod
    def parse(cls, value: Any) -> "ForecastType":
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper().replace("&", "_").replace(" ", "")
        aliases = {"GCGR": cls.GC_GR, "GC_GR": cls.GC_GR, "DRAW": cls.DRAW}
        if key not in aliases:
            raise ValidationError("forecast_type", f"unknown forecast type '{value}'")
        return aliases[key]


class ForecastMethod(str, Enum):
    """Curve used to spread a budget across the forecast window."""
    MANUAL = "MANUAL"
    LINEAR = "LINEAR"
    S_CURVE = "S_CURVE"
    BELL_CURVE = "BELL_CURVE"
    AI_FORECAST = "AI_FORECAST"

    @property
    def label(self) -> str:
        return {
            "MANUAL": "Manual",
            "LINEAR": "Linear",
            "S_CURVE": "S-Curve",
            "BELL_CURVE": "Bell Curve",
            "AI_FORECAST": "AI Forecast",
        }[self.value]

    @classmethod
    def parse(cls, value: Any) -> "ForecastMethod":
        """Accept enum members, names, or display labels ('S-Curve', 'Manual')."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
        if key in ("HBI", "HBI_FORECAST", "AI"):
            return cls.AI_FORECAST
        try:
            return cls(key)
        except ValueError:
            raise ValidationError("method", f"unknown forecast method '{value}'")


def coerce_budget(value: Any) -> float:
    """Budgets are finite and non-negative; anything else becomes 0."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def coerce_amount(value: Any) -> float:
    """Summary amounts may be negative; non-finite or invalid input becomes 0."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def coerce_weight(value: Any) -> int:
    """Weights are integers clamped to 1..10; non-numeric input becomes 1."""
    try:
        weight = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return MIN_WEIGHT
    return max(MIN_WEIGHT, min(MAX_WEIGHT, weight))


def rolling_month_keys(as_of: Optional[date] = None, count: int = 12) -> List[str]:
    """
    Month keys (YYYY-MM) of the rolling window starting at the as_of month.

    Args:
        as_of: Any date inside the first month (default: today)
        count: Number of months in the window
    """
    as_of = as_of or date.today()
    keys = []
    year, month = as_of.year, as_of.month
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            month = 1
            year += 1
    return keys


def month_label(month_key: str) -> str:
    """'2026-10' -> 'October 26'."""
    year, month = month_key.split("-")
    return f"{date(int(year), int(month), 1):%B} {year[-2:]}"


@dataclass
class ForecastRecord:
    """
    Forecast line item for a project.

    Attributes:
        id: Identifier, unique within the project
        forecast_type: GC_GR (cost code) or DRAW (CSI code)
        project_id: Owning project
        cost_code: GC/GR cost code (required for GC_GR)
        csi_code: CSI MasterFormat code (required for DRAW)
        budget: Amount distributed across the window (non-negative)
        cost_to_complete: Remaining cost summary field
        estimated_at_completion: EAC summary field
        method: Distribution curve
        weight: 1-10 tilt, 10 = front-loaded baseline, 1 = back-loaded
        monthly_distribution: Current forecast, month key -> amount
        previous_monthly_distribution: Last committed forecast, same keys
    """

    id: str
    forecast_type: ForecastType
    project_id: str = "default"
    cost_code: Optional[str] = None
    cost_code_description: str = ""
    csi_code: Optional[str] = None
    csi_description: str = ""
    budget: float = 0.0
    cost_to_complete: float = 0.0
    estimated_at_completion: float = 0.0
    method: ForecastMethod = ForecastMethod.MANUAL
    weight: int = DEFAULT_WEIGHT
    monthly_distribution: Dict[str, float] = field(default_factory=dict)
    previous_monthly_distribution: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise ValidationError("id", "record id is required")
        self.id = str(self.id)
        self.forecast_type = ForecastType.parse(self.forecast_type)
        self.method = ForecastMethod.parse(self.method)
        self.budget = coerce_budget(self.budget)
        self.cost_to_complete = coerce_amount(self.cost_to_complete)
        self.estimated_at_completion = coerce_amount(self.estimated_at_completion)
        self.weight = coerce_weight(self.weight)

        if self.forecast_type is ForecastType.GC_GR and not self.cost_code:
            raise ValidationError("cost_code", "GC_GR records require a cost code")
        if self.forecast_type is ForecastType.DRAW and not self.csi_code:
            raise ValidationError("csi_code", "DRAW records require a CSI code")

        self.monthly_distribution = {
            str(k): coerce_amount(v) for k, v in self.monthly_distribution.items()
        }
        self.previous_monthly_distribution = {
            str(k): coerce_amount(v) for k, v in self.previous_monthly_distribution.items()
        }

    @property
    def variance(self) -> float:
        """EAC over budget (positive = overrun)."""
        return self.estimated_at_completion - self.budget

    @property
    def monthly_variance(self) -> Dict[str, float]:
        """Current minus previous forecast for each month."""
        from forecast_engine.domain.services.variance_engine import variance
        return variance(self.monthly_distribution, self.previous_monthly_distribution)

    @property
    def month_keys(self) -> List[str]:
        return list(self.monthly_distribution)

    @property
    def display_name(self) -> str:
        if self.forecast_type is ForecastType.GC_GR:
            return f"{self.cost_code} - {self.cost_code_description}".rstrip(" -")
        return f"{self.csi_code} - {self.csi_description}".rstrip(" -")

    @property
    def csi_division(self) -> Optional[str]:
        """Two-digit CSI division ('03 30 00' -> '03')."""
        if not self.csi_code:
            return None
        digits = "".join(ch for ch in self.csi_code if ch.isdigit())
        return digits[:2] if len(digits) >= 2 else None

    def distribution_total(self) -> float:
        return sum(self.monthly_distribution.values())

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'project_id': self.project_id,
            'forecast_type': self.forecast_type.value,
            'cost_code': self.cost_code,
            'cost_code_description': self.cost_code_description,
            'csi_code': self.csi_code,
            'csi_description': self.csi_description,
            'budget': self.budget,
            'cost_to_complete': self.cost_to_complete,
            'estimated_at_completion': self.estimated_at_completion,
            'variance': self.variance,
            'method': self.method.value,
            'weight': self.weight,
            'monthly_distribution': dict(self.monthly_distribution),
            'previous_monthly_distribution': dict(self.previous_monthly_distribution),
            'monthly_variance': self.monthly_variance,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ForecastRecord":
        """Build a record from a dictionary, ignoring derived fields."""
        return cls(
            id=data['id'],
            forecast_type=data['forecast_type'],
            project_id=data.get('project_id', 'default'),
            cost_code=data.get('cost_code'),
            cost_code_description=data.get('cost_code_description') or "",
            csi_code=data.get('csi_code'),
            csi_description=data.get('csi_description') or "",
            budget=data.get('budget', 0.0),
            cost_to_complete=data.get('cost_to_complete', 0.0),
            estimated_at_completion=data.get('estimated_at_completion', 0.0),
            method=data.get('method', ForecastMethod.MANUAL),
            weight=data.get('weight', DEFAULT_WEIGHT),
            monthly_distribution=dict(data.get('monthly_distribution') or {}),
            previous_monthly_distribution=dict(data.get('previous_monthly_distribution') or {}),
        )
