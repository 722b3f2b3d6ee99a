"""Strategy service: rebalance analysis of a stored strategy."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from integrations.exceptions import ProviderError
from schemas.strategy import RebalanceConfig, parse_strategy_config
from services.exceptions import InvalidInputError, NotFoundError
from services.market_data_service import MarketDataService
from services.snapshot_store import SqlSnapshotStore
from utils.rounding import round_amount, round_money, to_float

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 5.0


@dataclass
class Recommendation:
    symbol: str
    action: str  # "buy" or "sell"
    amount: Decimal
    value_usd: Decimal
    reason: str


@dataclass
class StrategyAnalysis:
    strategy_id: str
    strategy_name: str
    total_value: Decimal
    threshold: Decimal
    current_alloc: dict[str, Decimal] = field(default_factory=dict)
    target_alloc: dict[str, Decimal] = field(default_factory=dict)
    deviation: dict[str, Decimal] = field(default_factory=dict)
    recommendations: list[Recommendation] = field(default_factory=list)


class StrategyService:
    """Compares a rebalance strategy's targets with current holdings."""

    def __init__(self, store: SqlSnapshotStore, market_data: MarketDataService):
        self._store = store
        self._market_data = market_data

    def analyze(self, user_id: str, strategy_id: str) -> StrategyAnalysis:
        """Per-symbol drift from target and the trades that would close it.

        Raises:
            NotFoundError: No such strategy for this user.
            InvalidInputError: The strategy is not a rebalance strategy, or
                its config does not parse.
        """
        strategy = self._store.get_strategy(user_id, strategy_id)
        if strategy is None:
            raise NotFoundError(f"Strategy {strategy_id} not found")

        config = parse_strategy_config(strategy.type, strategy.config)
        if not isinstance(config, RebalanceConfig):
            raise InvalidInputError(f"analysis is only available for rebalance strategies, not {strategy.type}")

        threshold = config.threshold if config.threshold > 0 else DEFAULT_THRESHOLD

        total = 0.0
        values: dict[str, float] = {}
        for detail in self._store.list_details(user_id):
            symbol = detail.asset_symbol.upper()
            value = to_float(detail.value_usd)
            values[symbol] = values.get(symbol, 0.0) + value
            total += value

        current = {s: v / total * 100 for s, v in values.items()} if total > 0 else {}
        # Later entries for the same symbol replace earlier ones
        target = {a.symbol.upper(): a.percentage for a in config.allocations}
        deviation = {s: current.get(s, 0.0) - t for s, t in target.items()}

        drifted = [s for s, dev in deviation.items() if abs(dev) > threshold]
        prices: dict[str, float] = {}
        if drifted:
            try:
                prices = self._market_data.get_current_prices(drifted)
            except ProviderError:
                logger.warning("Price lookup failed for rebalance of %s; amounts will be 0", strategy_id, exc_info=True)

        recommendations = []
        for symbol in drifted:
            dev = deviation[symbol]
            value_usd = abs(dev) / 100 * total
            price = prices.get(symbol, 0.0)
            recommendations.append(
                Recommendation(
                    symbol=symbol,
                    action="sell" if dev > 0 else "buy",
                    amount=round_amount(value_usd / price if price > 0 else 0.0),
                    value_usd=round_money(value_usd),
                    reason="above target allocation" if dev > 0 else "below target allocation",
                )
            )

        logger.info(
            "Rebalance analysis %s: %d of %d targets beyond %.2f%%",
            strategy_id, len(recommendations), len(target), threshold,
        )
        return StrategyAnalysis(
            strategy_id=strategy.id,
            strategy_name=strategy.name,
            total_value=round_money(total),
            threshold=round_money(threshold),
            current_alloc={s: round_money(v) for s, v in current.items()},
            target_alloc={s: round_money(v) for s, v in target.items()},
            deviation={s: round_money(v) for s, v in deviation.items()},
            recommendations=recommendations,
        )
