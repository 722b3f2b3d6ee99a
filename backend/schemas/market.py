"""Pydantic schemas for market data API responses."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ChainGasPriceResponse(BaseModel):
    """Gas tiers for one chain."""

    model_config = ConfigDict(from_attributes=True)

    chain: str
    low: Decimal
    standard: Decimal
    fast: Decimal
    instant: Decimal
    base_fee: Decimal
    unit: str
    level: str  # "low", "medium" or "high"


class GasOverviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chains: list[ChainGasPriceResponse]
    updated_at: Optional[datetime] = None
