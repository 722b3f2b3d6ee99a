"""Strategy configuration variants and rebalance analysis schemas.

A strategy's ``config`` column holds JSON whose shape depends on the
strategy type. Each type has its own model, and the ``type`` field selects
which one applies.
"""

import json
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from services.exceptions import InvalidInputError


class TargetAllocation(BaseModel):
    """Target share of one symbol, in percent."""

    symbol: str
    percentage: float = Field(ge=0, le=100)


class RebalanceConfig(BaseModel):
    type: Literal["rebalance"] = "rebalance"
    allocations: list[TargetAllocation] = Field(default_factory=list)
    threshold: float = 5.0  # percentage points of drift before acting


class DCAConfig(BaseModel):
    type: Literal["dca"] = "dca"
    symbol: str
    amount_usd: float = Field(gt=0)
    interval_days: int = Field(default=7, ge=1)


class StopLimitConfig(BaseModel):
    type: Literal["stop_limit"] = "stop_limit"
    symbol: str
    stop_price: float = Field(gt=0)
    limit_price: float = Field(gt=0)


StrategyConfig = Annotated[
    Union[RebalanceConfig, DCAConfig, StopLimitConfig],
    Field(discriminator="type"),
]

_config_adapter = TypeAdapter(StrategyConfig)


def parse_strategy_config(strategy_type: str, config_json: Optional[str]) -> StrategyConfig:
    """Parse a stored config blob for a strategy of ``strategy_type``.

    The row's ``type`` column is the discriminant; a ``type`` key inside the
    blob that disagrees with it is rejected.

    Raises:
        InvalidInputError: The blob is not valid JSON or does not match the
            variant for ``strategy_type``.
    """
    try:
        data = json.loads(config_json) if config_json else {}
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"strategy config is not valid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise InvalidInputError("strategy config must be a JSON object")

    if data.setdefault("type", strategy_type) != strategy_type:
        raise InvalidInputError(
            f"strategy config type {data['type']!r} does not match strategy type {strategy_type!r}"
        )
    try:
        return _config_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidInputError(f"invalid {strategy_type} strategy config: {e}") from e


class RebalanceRecommendation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    action: Literal["buy", "sell"]
    amount: Decimal
    value_usd: Decimal
    reason: str


class StrategyAnalysisResponse(BaseModel):
    """Rebalance analysis of one strategy against current holdings.

    Allocation maps are keyed by symbol and expressed in percent.
    """

    model_config = ConfigDict(from_attributes=True)

    strategy_id: str
    strategy_name: str
    total_value: Decimal
    threshold: Decimal
    current_alloc: dict[str, Decimal]
    target_alloc: dict[str, Decimal]
    deviation: dict[str, Decimal]
    recommendations: list[RebalanceRecommendation]
