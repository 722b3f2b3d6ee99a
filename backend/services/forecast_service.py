"""Forecast service: linear trend over snapshot history and target-date projection."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import numpy as np

from models.utils import utc_now
from services.exceptions import InvalidInputError
from services.snapshot_store import SnapshotStore
from utils.rounding import round_money, round_ratio, to_float

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 90
MIN_POINTS = 3
# Projections past this horizon are not reported
MAX_HORIZON_DAYS = 3650
# Absolute currency units per day, not a percentage
TREND_THRESHOLD = 1.0


@dataclass
class ForecastResult:
    target_value: Decimal
    currency: str
    trend: str = "flat"
    data_points: int = 0
    current_value: Decimal = Decimal("0.00")
    daily_growth: Decimal = Decimal("0.00")
    growth_rate: Decimal = Decimal("0.000")  # slope as % of current value per day
    confidence: Decimal = Decimal("0.000")  # R²
    estimated_date: Optional[datetime] = None
    days_to_target: Optional[int] = None


@dataclass
class LinearFit:
    slope: float
    intercept: float
    r_squared: float
    constant: bool = False  # every y equal; no projection is meaningful


def fit_line(x: np.ndarray, y: np.ndarray) -> Optional[LinearFit]:
    """Ordinary least squares of y on x.

    Returns None when the normal equations are degenerate (all x equal).
    R² is defined as 0 for a constant series.
    """
    n = float(len(x))
    sum_x = float(np.sum(x))
    sum_y = float(np.sum(y))
    sum_xy = float(np.sum(x * y))
    sum_x2 = float(np.sum(x * x))

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    predicted = slope * x + intercept
    ss_total = float(np.sum((y - sum_y / n) ** 2))
    ss_residual = float(np.sum((y - predicted) ** 2))
    r_squared = 1.0 - ss_residual / ss_total if ss_total > 0 else 0.0
    return LinearFit(slope=slope, intercept=intercept, r_squared=r_squared, constant=ss_total == 0)


def classify_trend(slope: float) -> str:
    if slope > TREND_THRESHOLD:
        return "up"
    if slope < -TREND_THRESHOLD:
        return "down"
    return "flat"


def _day_index(ts: datetime, origin: datetime) -> int:
    return int((ts - origin).total_seconds() / 86400)


class ForecastService:
    """Projects when the portfolio reaches a target value."""

    def __init__(self, store: SnapshotStore):
        self._store = store

    def get_forecast(
        self,
        user_id: str,
        target_value: float,
        currency: str = "USD",
        now: Optional[datetime] = None,
    ) -> ForecastResult:
        """Fit a trend to the last 90 days and project the target date.

        Raises:
            InvalidInputError: ``target_value`` is not positive.
        """
        if target_value is None or target_value <= 0:
            raise InvalidInputError("target value must be positive")
        currency = currency or "USD"
        now = now or utc_now()
        target = round_money(target_value)

        snapshots = self._store.list_snapshots(user_id, now - timedelta(days=LOOKBACK_DAYS))
        if len(snapshots) < MIN_POINTS:
            logger.info("Forecast: %d snapshot(s), need %d", len(snapshots), MIN_POINTS)
            return ForecastResult(target_value=target, currency=currency, data_points=len(snapshots))

        # One point per day offset; the last snapshot of a day wins
        origin = snapshots[0].snapshot_time
        by_day: dict[int, float] = {}
        for snap in snapshots:
            by_day[_day_index(snap.snapshot_time, origin)] = to_float(snap.total_value_usd)

        if len(by_day) < MIN_POINTS:
            return ForecastResult(target_value=target, currency=currency, data_points=len(by_day))

        x = np.array(list(by_day.keys()), dtype=float)
        y = np.array(list(by_day.values()), dtype=float)
        fit = fit_line(x, y)
        if fit is None:
            return ForecastResult(target_value=target, currency=currency, data_points=len(by_day))

        latest = snapshots[-1]
        current_value = to_float(latest.total_value_usd)
        current_day = _day_index(latest.snapshot_time, origin)
        growth_rate = fit.slope / current_value * 100 if current_value > 0 else 0.0

        result = ForecastResult(
            target_value=target,
            currency=currency,
            trend=classify_trend(fit.slope),
            data_points=len(by_day),
            current_value=round_money(current_value),
            daily_growth=round_money(fit.slope),
            growth_rate=round_ratio(growth_rate),
            confidence=round_ratio(fit.r_squared),
        )

        if fit.constant:
            # A constant series carries no trend information, so no date either way
            pass
        elif fit.slope > 0 and target_value > current_value:
            target_day = (target_value - fit.intercept) / fit.slope
            days = math.ceil(target_day - current_day)
            if 0 < days < MAX_HORIZON_DAYS:
                result.estimated_date = now + timedelta(days=days)
                result.days_to_target = days
        elif current_value >= target_value:
            result.estimated_date = now
            result.days_to_target = 0

        logger.info(
            "Forecast: current=%.2f target=%.2f slope=%.4f r2=%.3f trend=%s days=%s",
            current_value, target_value, fit.slope, fit.r_squared, result.trend,
            result.days_to_target,
        )
        return result
