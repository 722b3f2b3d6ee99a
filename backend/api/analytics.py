"""Analytics API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import (
    get_attribution_service,
    get_benchmark_service,
    get_forecast_service,
    get_health_score_service,
    get_pnl_service,
    get_user_id,
)
from config import settings
from schemas.analytics import (
    AttributionResponse,
    BenchmarkResponse,
    DailyPnLResponse,
    ForecastResponse,
    HealthScoreResponse,
    PnLSummaryResponse,
)
from services.attribution_service import AttributionService
from services.benchmark_service import BenchmarkService
from services.exceptions import InvalidInputError
from services.forecast_service import ForecastService
from services.health_score_service import HealthScoreService
from services.pnl_service import PnLService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/attribution", response_model=AttributionResponse)
def get_attribution(
    days: int = Query(7, description="Window length: 1, 7 or 30"),
    currency: str = Query(None, description="Reporting currency label"),
    user_id: str = Depends(get_user_id),
    service: AttributionService = Depends(get_attribution_service),
):
    """Break the window's value change into price, quantity and interaction effects."""
    result = service.get_attribution(user_id, days=days, currency=currency or settings.DEFAULT_CURRENCY)
    return AttributionResponse.model_validate(result)


@router.get("/forecast", response_model=ForecastResponse)
def get_forecast(
    target: float = Query(..., description="Target portfolio value"),
    currency: str = Query(None, description="Reporting currency label"),
    user_id: str = Depends(get_user_id),
    service: ForecastService = Depends(get_forecast_service),
):
    """Project when the portfolio reaches ``target`` from its 90-day trend.

    Returns 422 for a non-positive target.
    """
    try:
        result = service.get_forecast(user_id, target, currency=currency or settings.DEFAULT_CURRENCY)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ForecastResponse.model_validate(result)


@router.get("/pnl/daily", response_model=DailyPnLResponse)
def get_daily_pnl(
    days: int = Query(30, description="Number of days; non-positive means 30"),
    user_id: str = Depends(get_user_id),
    service: PnLService = Depends(get_pnl_service),
):
    return DailyPnLResponse.model_validate(service.get_daily_pnl(user_id, days=days))


@router.get("/pnl/summary", response_model=PnLSummaryResponse)
def get_pnl_summary(
    user_id: str = Depends(get_user_id),
    service: PnLService = Depends(get_pnl_service),
):
    """7/30/90-day PnL plus best and worst day over the last 90 days."""
    return PnLSummaryResponse.model_validate(service.get_summary(user_id))


@router.get("/health-score", response_model=HealthScoreResponse)
def get_health_score(
    user_id: str = Depends(get_user_id),
    service: HealthScoreService = Depends(get_health_score_service),
):
    return HealthScoreResponse.model_validate(service.get_health_score(user_id))


@router.get("/benchmark", response_model=BenchmarkResponse)
def get_benchmark(
    period: str = Query("30d", description="7d, 30d, 90d or 1y"),
    user_id: str = Depends(get_user_id),
    service: BenchmarkService = Depends(get_benchmark_service),
):
    """Compare the user's return with Bitcoin, Ethereum and the S&P 500.

    A benchmark whose data is unavailable reports a 0% return.
    """
    return BenchmarkResponse.model_validate(service.compare(user_id, period=period))
