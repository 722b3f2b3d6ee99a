"""Market data API endpoints."""

from fastapi import APIRouter, Depends

from api.deps import get_gas_price_service
from schemas.market import GasOverviewResponse
from services.gas_price_service import GasPriceService

router = APIRouter(prefix="/api/market", tags=["market"])


@router.get("/gas", response_model=GasOverviewResponse)
def get_gas_prices(service: GasPriceService = Depends(get_gas_price_service)):
    """Gas tiers for Ethereum, BSC and Polygon.

    Served from a short-lived cache; when every upstream fails the last
    known prices (or the built-in defaults) are returned instead of an error.
    """
    return GasOverviewResponse.model_validate(service.get_all())
