"""Pydantic schemas for analytics API responses.

Money and percentage fields are already rounded to 2 places by the
services; ratios (R², growth rate) to 3.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AssetAttributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: Optional[str] = None
    start_balance: Decimal
    end_balance: Decimal
    start_price: Decimal
    end_price: Decimal
    start_value: Decimal
    end_value: Decimal
    total_change: Decimal
    price_effect: Decimal
    quantity_effect: Decimal
    interaction_effect: Decimal


class AttributionResponse(BaseModel):
    """Value change over a window split into price/quantity/interaction."""

    model_config = ConfigDict(from_attributes=True)

    range: str  # "1d", "7d" or "30d"
    currency: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_change: Decimal
    price_effect: Decimal
    quantity_effect: Decimal
    interaction_effect: Decimal
    assets: list[AssetAttributionResponse]


class ForecastResponse(BaseModel):
    """Linear trend of portfolio value and target-date projection."""

    model_config = ConfigDict(from_attributes=True)

    target_value: Decimal
    currency: str
    trend: str  # "up", "down" or "flat"
    data_points: int
    current_value: Decimal
    daily_growth: Decimal
    growth_rate: Decimal
    confidence: Decimal
    estimated_date: Optional[datetime] = None
    days_to_target: Optional[int] = None


class DailyPnLPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    start_value: Decimal
    end_value: Decimal
    pnl: Decimal
    pnl_percent: Decimal


class DailyPnLResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily: list[DailyPnLPointResponse]
    total_pnl: Decimal


class PnLPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pnl: Decimal
    pnl_percent: Decimal
    start_value: Decimal
    end_value: Decimal


class PnLSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_pnl: Decimal
    total_pnl_percent: Decimal
    pnl_7d: PnLPeriodResponse
    pnl_30d: PnLPeriodResponse
    pnl_90d: PnLPeriodResponse
    best_day: Optional[str] = None
    best_day_pnl: Decimal
    worst_day: Optional[str] = None
    worst_day_pnl: Decimal


class HealthDimensionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    score: Decimal
    max_score: int
    weight: Decimal
    description: str
    suggestion: str
    value: Decimal


class HealthScoreResponse(BaseModel):
    """Composite 0-100 score of the current holdings."""

    model_config = ConfigDict(from_attributes=True)

    score: Decimal
    level: str  # "excellent", "good", "fair" or "poor"
    details: list[HealthDimensionResponse]
    weakest: str
    advice: list[str]


class BenchmarkItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    symbol: str
    return_pct: Decimal
    diff: Decimal  # user return minus benchmark return


class BenchmarkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period: str
    user_return: Decimal
    start_date: str
    end_date: str
    benchmarks: list[BenchmarkItemResponse]
