"""Asset refresh: collect live balances, rewrite details, append a snapshot."""

import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from functools import partial
from typing import Optional

from integrations.exceptions import ProviderError
from integrations.source_protocol import (
    Balance,
    BalanceSource,
    SourceError,
    WalletBalanceSource,
    classify_error,
)
from models import AssetSnapshot
from models.asset_detail import SOURCE_TYPE_BLOCKCHAIN, SOURCE_TYPE_CEX, SOURCE_TYPE_MANUAL
from services.market_data_service import MarketDataService
from services.snapshot_store import DetailInput, SqlSnapshotStore
from utils.fan_out import FanOut
from utils.rounding import round_money

logger = logging.getLogger(__name__)

# Balance and price columns keep more precision than presentation output
_BALANCE_QUANTUM = Decimal("0.0000000001")
_PRICE_QUANTUM = Decimal("0.00000001")


@dataclass
class RefreshResult:
    """Outcome of a full refresh."""

    snapshot: Optional[AssetSnapshot]
    detail_count: int = 0
    errors: list[SourceError] = field(default_factory=list)
    cancelled: bool = False


def _dec(value: float, quantum: Decimal) -> Decimal:
    return Decimal(str(value)).quantize(quantum)


class AssetRefreshService:
    """Fans out over every exchange account and wallet of a user.

    Exchange balances that arrive valued keep their value; anything else
    (wallet balances, quantity-only exchanges) is priced through the
    market data service in one batch. Manual details are carried over
    unchanged. A source that fails is logged, reported in ``errors`` and
    contributes nothing; it never aborts the refresh.
    """

    def __init__(
        self,
        store: SqlSnapshotStore,
        market_data: MarketDataService,
        wallet_source: WalletBalanceSource,
        exchange_sources: Optional[dict[str, BalanceSource]] = None,
        fan_out: Optional[FanOut] = None,
    ):
        self._store = store
        self._market_data = market_data
        self._wallet_source = wallet_source
        self._exchange_sources = exchange_sources or {}
        self._fan_out = fan_out or FanOut()

    def refresh_all(
        self, user_id: str, cancel_event: Optional[threading.Event] = None
    ) -> RefreshResult:
        accounts = self._store.list_active_exchange_accounts(user_id)
        wallets = self._store.list_active_wallets(user_id)

        tasks = {}
        labels: dict[str, tuple[str, str]] = {}  # task key -> (source_type, source)
        errors: list[SourceError] = []

        for account in accounts:
            source = self._exchange_sources.get(account.exchange)
            if source is None:
                logger.warning("No balance source configured for exchange %s", account.exchange)
                errors.append(SourceError(account.exchange, "exchange not supported"))
                continue
            key = f"cex:{account.id}"
            tasks[key] = partial(source.get_balances, account.id)
            labels[key] = (SOURCE_TYPE_CEX, account.exchange)

        for wallet in wallets:
            key = f"wallet:{wallet.id}"
            tasks[key] = partial(self._wallet_source.get_wallet_balances, wallet.address, wallet.chain)
            labels[key] = (SOURCE_TYPE_BLOCKCHAIN, f"{wallet.chain}:{wallet.address}")

        outcome = self._fan_out.run(tasks, cancel_event=cancel_event)
        for key, exc in outcome.ordered_errors():
            source_type, source = labels[key]
            logger.warning("Balance refresh failed for %s %s: %s", source_type, source, exc)
            errors.append(classify_error(source, exc))

        cex_balances: list[tuple[str, Balance]] = []
        wallet_balances: list[tuple[str, Balance]] = []
        for key, balances in outcome.ordered_results():
            source_type, source = labels[key]
            target = cex_balances if source_type == SOURCE_TYPE_CEX else wallet_balances
            target.extend((source, b) for b in balances if b.total > 0)

        cex_merged = self._merge(cex_balances)
        wallet_merged = self._merge(wallet_balances)
        unpriced = {symbol for (symbol, _), b in cex_merged.items() if b.value_usd <= 0}
        unpriced.update(symbol for symbol, _ in wallet_merged)
        prices = self._prices(unpriced)

        details = self._cex_details(cex_merged, prices)
        details.extend(self._wallet_details(wallet_merged, prices))

        manual_total = sum(
            (d.value_usd for d in self._store.list_details(user_id) if d.source_type == SOURCE_TYPE_MANUAL),
            Decimal("0"),
        )
        self._store.replace_details(user_id, details, keep_source_types=[SOURCE_TYPE_MANUAL])

        cex_total = sum((d.value_usd for d in details if d.source_type == SOURCE_TYPE_CEX), Decimal("0"))
        chain_total = sum((d.value_usd for d in details if d.source_type == SOURCE_TYPE_BLOCKCHAIN), Decimal("0"))
        snapshot = self._store.append_snapshot(
            user_id,
            total_value_usd=round_money(cex_total + chain_total + manual_total),
            cex_value_usd=round_money(cex_total),
            blockchain_value_usd=round_money(chain_total),
            manual_value_usd=round_money(manual_total),
        )
        logger.info(
            "Asset refresh for %s: %d details, total %s (%d source errors)",
            user_id, len(details), snapshot.total_value_usd, len(errors),
        )
        return RefreshResult(
            snapshot=snapshot,
            detail_count=len(details),
            errors=errors,
            cancelled=outcome.cancelled,
        )

    @staticmethod
    def _merge(rows: list[tuple[str, Balance]]) -> dict[tuple[str, str], Balance]:
        """Combine balances of the same symbol from the same source."""
        merged: dict[tuple[str, str], Balance] = {}
        for source, balance in rows:
            key = (balance.symbol.upper(), source)
            existing = merged.get(key)
            if existing is None:
                merged[key] = Balance(
                    symbol=balance.symbol.upper(),
                    name=balance.name,
                    total=balance.total,
                    free=balance.free,
                    locked=balance.locked,
                    value_usd=balance.value_usd,
                )
            else:
                existing.total += balance.total
                existing.free += balance.free
                existing.locked += balance.locked
                existing.value_usd += balance.value_usd
        return merged

    def _prices(self, symbols: set[str]) -> dict[str, float]:
        if not symbols:
            return {}
        try:
            return self._market_data.get_current_prices(sorted(symbols))
        except ProviderError:
            logger.warning("Balance pricing failed; unpriced assets valued at 0", exc_info=True)
            return {}

    @staticmethod
    def _cex_details(
        merged: dict[tuple[str, str], Balance], prices: dict[str, float]
    ) -> list[DetailInput]:
        details = []
        for (symbol, source), balance in merged.items():
            if balance.value_usd > 0:
                value = balance.value_usd
                price = value / balance.total if balance.total > 0 else 0.0
            else:
                price = prices.get(symbol, 0.0)
                value = balance.total * price
            details.append(
                DetailInput(
                    asset_symbol=symbol,
                    asset_name=balance.name or symbol,
                    balance=_dec(balance.total, _BALANCE_QUANTUM),
                    price_usd=_dec(price, _PRICE_QUANTUM),
                    value_usd=round_money(value),
                    source=source,
                    source_type=SOURCE_TYPE_CEX,
                )
            )
        return details

    @staticmethod
    def _wallet_details(
        merged: dict[tuple[str, str], Balance], prices: dict[str, float]
    ) -> list[DetailInput]:
        details = []
        for (symbol, source), balance in merged.items():
            price = prices.get(symbol, 0.0)
            details.append(
                DetailInput(
                    asset_symbol=symbol,
                    asset_name=balance.name or symbol,
                    balance=_dec(balance.total, _BALANCE_QUANTUM),
                    price_usd=_dec(price, _PRICE_QUANTUM),
                    value_usd=round_money(balance.total * price),
                    source=source,
                    source_type=SOURCE_TYPE_BLOCKCHAIN,
                )
            )
        return details
