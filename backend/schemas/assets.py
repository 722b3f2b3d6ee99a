"""Pydantic schemas for asset refresh API responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from schemas.defi import SourceErrorResponse


class SnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    snapshot_time: datetime
    total_value_usd: Decimal
    cex_value_usd: Decimal
    blockchain_value_usd: Decimal
    manual_value_usd: Decimal


class RefreshResponse(BaseModel):
    """Outcome of a refresh; failed sources are listed, not raised."""

    model_config = ConfigDict(from_attributes=True)

    snapshot: SnapshotResponse
    detail_count: int
    errors: list[SourceErrorResponse] = []
    cancelled: bool = False
