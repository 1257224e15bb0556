"""
Distribution Calculator - Spreads a budget across the rolling forecast window.

Each method defines a shape factor per month which is tilted by the
record's weight and then normalized so the months sum to the budget:

    raw(i)    = (budget / n) * factor(i) * weight_adj(i)
    amount(i) = raw(i) * budget / Σ raw

Pure functions; the AI_FORECAST noise term is seeded by record id so
repeated calls return identical results.
"""
import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..entities.forecast_record import (
    ForecastMethod, coerce_budget, coerce_weight, MAX_WEIGHT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurveParameters:
    """Shape constants for the distribution curves."""
    s_curve_steepness: float = 0.5
    bell_curve_sigma: float = 3.0
    ai_base: float = 0.8
    ai_amplitude: float = 0.4
    ai_noise: float = 0.1

    @classmethod
    def from_config(cls, config) -> "CurveParameters":
        ai = config.ai_forecast_params
        return cls(
            s_curve_steepness=config.s_curve_steepness,
            bell_curve_sigma=config.bell_curve_sigma,
            ai_base=ai["base"],
            ai_amplitude=ai["amplitude"],
            ai_noise=ai["noise"],
        )


DEFAULT_CURVE_PARAMETERS = CurveParameters()


def ai_noise(seed: str, index: int, bound: float) -> float:
    """
    Deterministic perturbation in [-bound, bound] for a record/month pair.

    Derived from a SHA-256 digest so the value is stable across processes.
    """
    digest = hashlib.sha256(f"{seed}:{index}".encode("utf-8")).digest()
    unit = int.from_bytes(digest[:8], "big") / float(2 ** 64)
    return (2.0 * unit - 1.0) * bound


def shape_factors(
    method: ForecastMethod,
    month_count: int,
    seed: Optional[str] = None,
    params: CurveParameters = DEFAULT_CURVE_PARAMETERS,
) -> np.ndarray:
    """
    Shape factor for every month index.

    Formulas (n = month_count, i = month index):
    - MANUAL / LINEAR: 1
    - S_CURVE: 1 / (1 + exp(-k * (i - n/2)))
    - BELL_CURVE: exp(-0.5 * ((i - n/2) / sigma)^2)
    - AI_FORECAST: base + amplitude * sin(pi * i / n) + noise(i)
    """
    i = np.arange(month_count, dtype=float)
    midpoint = month_count / 2.0

    if method is ForecastMethod.S_CURVE:
        return 1.0 / (1.0 + np.exp(-params.s_curve_steepness * (i - midpoint)))

    if method is ForecastMethod.BELL_CURVE:
        return np.exp(-0.5 * ((i - midpoint) / params.bell_curve_sigma) ** 2)

    if method is ForecastMethod.AI_FORECAST:
        noise = np.array([
            ai_noise(seed or "", int(idx), params.ai_noise) for idx in range(month_count)
        ])
        return params.ai_base + params.ai_amplitude * np.sin(np.pi * i / month_count) + noise

    return np.ones(month_count)


def weight_adjustments(weight: int, month_count: int) -> np.ndarray:
    """
    Linear ramp from w to 1 across the window, w = weight / 10.

    weight 10 leaves the curve untouched; weight 1 suppresses early
    months (ramp 0.1 -> 1.0), back-loading the forecast.
    """
    w = coerce_weight(weight) / float(MAX_WEIGHT)
    if month_count <= 1:
        return np.ones(month_count)
    progress = np.arange(month_count, dtype=float) / (month_count - 1)
    return w + (1.0 - w) * progress


def distribute(
    budget: float,
    method: ForecastMethod,
    weight: int,
    month_count: int = 12,
    seed: Optional[str] = None,
    params: CurveParameters = DEFAULT_CURVE_PARAMETERS,
) -> List[float]:
    """
    Distribute a budget across month_count months.

    Args:
        budget: Total to distribute (negative or invalid input treated as 0)
        method: Distribution curve
        weight: 1-10 front/back-loading tilt
        month_count: Number of months in the window
        seed: Record id seeding the AI_FORECAST noise
        params: Curve shape constants

    Returns:
        Monthly amounts summing to budget
    """
    budget = coerce_budget(budget)
    method = ForecastMethod.parse(method)

    if month_count <= 0:
        return []
    if budget == 0:
        return [0.0] * month_count
    if month_count == 1:
        return [budget]

    factors = shape_factors(method, month_count, seed, params)
    raw = (budget / month_count) * factors * weight_adjustments(weight, month_count)

    total = float(raw.sum())
    if total <= 0 or not np.isfinite(total):
        logger.warning(
            f"Degenerate {method.value} curve for seed {seed!r}; falling back to zeros"
        )
        return [0.0] * month_count

    amounts = raw * (budget / total)
    # Rounding remainder goes to the last month
    amounts[-1] = max(0.0, budget - math.fsum(amounts[:-1]))
    logger.debug(f"Distributed {budget:,.2f} via {method.value} weight={weight}")
    return amounts.tolist()


def distribute_to_months(
    budget: float,
    method: ForecastMethod,
    weight: int,
    month_keys: Sequence[str],
    seed: Optional[str] = None,
    params: CurveParameters = DEFAULT_CURVE_PARAMETERS,
) -> Dict[str, float]:
    """distribute() keyed by the given month keys, preserving their order."""
    amounts = distribute(budget, method, weight, len(month_keys), seed, params)
    return dict(zip(month_keys, amounts))
