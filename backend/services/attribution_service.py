"""Attribution service: split a window's value change into price/quantity effects.

Known limitation: there is no per-asset history, only total-value
snapshots and the current holdings. Each asset's start state is therefore
estimated: start balance = current balance, start price = current price
scaled by earliest_total / latest_total. With balances assumed unchanged,
the quantity and interaction effects are always 0 and the whole move is
attributed to price, even when holdings actually changed in the window.
Downstream consumers rely on these numbers as-is.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from models.utils import utc_now
from services.snapshot_store import SnapshotStore
from utils.rounding import round_money, to_float

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 7
_RANGE_LABELS = {1: "1d", 7: "7d", 30: "30d"}


def format_range(days: int) -> str:
    """Range label for a window length; unsupported lengths read as 7d."""
    return _RANGE_LABELS.get(days, "7d")


@dataclass
class AssetAttribution:
    symbol: str
    name: Optional[str]
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


@dataclass
class AttributionResult:
    range: str
    currency: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_change: Decimal = Decimal("0.00")
    price_effect: Decimal = Decimal("0.00")
    quantity_effect: Decimal = Decimal("0.00")
    interaction_effect: Decimal = Decimal("0.00")
    assets: list[AssetAttribution] = field(default_factory=list)


class AttributionService:
    """Decomposes value change between the oldest and newest snapshot in a window."""

    def __init__(self, store: SnapshotStore):
        self._store = store

    def get_attribution(
        self,
        user_id: str,
        days: int = DEFAULT_DAYS,
        currency: str = "USD",
        now: Optional[datetime] = None,
    ) -> AttributionResult:
        if days <= 0:
            days = DEFAULT_DAYS
        currency = currency or "USD"
        now = now or utc_now()

        # One extra day so a snapshot from exactly `days` ago is included
        snapshots = self._store.list_snapshots(user_id, now - timedelta(days=days + 1))
        if len(snapshots) < 2:
            logger.info(
                "Attribution: %d snapshot(s) in %dd window, returning empty result",
                len(snapshots), days,
            )
            return AttributionResult(range=format_range(days), currency=currency)

        earliest, latest = snapshots[0], snapshots[-1]
        start_total = to_float(earliest.total_value_usd)
        end_total = to_float(latest.total_value_usd)

        assets = []
        total_price = total_quantity = total_interaction = 0.0
        for detail in self._store.list_details(user_id):
            end_balance = to_float(detail.balance)
            end_price = to_float(detail.price_usd)
            end_value = to_float(detail.value_usd)

            start_balance = start_price = start_value = 0.0
            if end_total > 0:
                start_balance = end_balance
                start_price = end_price * (start_total / end_total)
                start_value = start_balance * start_price

            price_effect = start_balance * (end_price - start_price)
            quantity_effect = start_price * (end_balance - start_balance)
            interaction_effect = (end_balance - start_balance) * (end_price - start_price)

            total_price += price_effect
            total_quantity += quantity_effect
            total_interaction += interaction_effect

            assets.append(
                AssetAttribution(
                    symbol=detail.asset_symbol,
                    name=detail.asset_name,
                    start_balance=Decimal(str(start_balance)),
                    end_balance=Decimal(str(end_balance)),
                    start_price=round_money(start_price),
                    end_price=Decimal(str(end_price)),
                    start_value=round_money(start_value),
                    end_value=round_money(end_value),
                    total_change=round_money(end_value - start_value),
                    price_effect=round_money(price_effect),
                    quantity_effect=round_money(quantity_effect),
                    interaction_effect=round_money(interaction_effect),
                )
            )

        result = AttributionResult(
            range=format_range(days),
            currency=currency,
            start_time=earliest.snapshot_time,
            end_time=latest.snapshot_time,
            total_change=round_money(end_total - start_total),
            price_effect=round_money(total_price),
            quantity_effect=round_money(total_quantity),
            interaction_effect=round_money(total_interaction),
            assets=assets,
        )
        logger.info(
            "Attribution %s: change=%s price=%s quantity=%s over %d assets",
            result.range, result.total_change, result.price_effect,
            result.quantity_effect, len(assets),
        )
        return result
