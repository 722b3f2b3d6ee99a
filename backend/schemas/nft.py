"""Pydantic schemas for NFT API responses."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from schemas.defi import SourceErrorResponse


class NFTItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contract_address: str
    token_id: str
    name: str
    description: str
    image_url: str
    collection: str
    chain: str
    floor_price: Decimal
    estimated_value: Decimal
    wallet_address: str


class NFTAssetsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    assets: list[NFTItemResponse]
    total_value: Decimal
    errors: list[SourceErrorResponse] = []
    cancelled: bool = False


class CollectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    collection: str
    chain: str
    count: int
    total_floor_price: Decimal


class CollectionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    collections: list[CollectionResponse]
    total_count: int
    total_value: Decimal
    errors: list[SourceErrorResponse] = []
    cancelled: bool = False
