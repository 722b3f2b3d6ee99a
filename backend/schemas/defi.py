"""Pydantic schemas for DeFi API responses."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from integrations.source_protocol import ErrorCategory


class SourceErrorResponse(BaseModel):
    """A source (wallet, exchange) that failed during a fan-out."""

    model_config = ConfigDict(from_attributes=True)

    source: str
    message: str
    category: ErrorCategory
    retriable: bool


class PositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    protocol: str
    protocol_name: str
    type: str
    chain: str
    token: str
    amount: Decimal
    value_usd: Decimal
    apy: Decimal
    wallet_address: str


class PositionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    positions: list[PositionResponse]
    total_value: Decimal
    errors: list[SourceErrorResponse] = []
    cancelled: bool = False


class DeFiStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_value_locked: Decimal
    position_count: int
    by_protocol: dict[str, Decimal]
    by_chain: dict[str, Decimal]
    by_type: dict[str, Decimal]


class ProtocolInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    chains: list[str]
    types: list[str]
    is_active: bool
