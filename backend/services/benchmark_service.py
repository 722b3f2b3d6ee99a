"""Benchmark service: user return versus reference index returns."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from models.utils import utc_now
from services.market_data_service import MarketDataService
from services.snapshot_store import SnapshotStore
from utils.rounding import round_money, to_float

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = "30d"
PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}

# (display name, symbol); SPX is routed to Yahoo Finance
BENCHMARKS = (
    ("Bitcoin", "BTC"),
    ("Ethereum", "ETH"),
    ("S&P 500", "SPX"),
)


def normalize_period(period: Optional[str]) -> str:
    """Canonical period label; unknown labels fall back to ``30d``."""
    label = (period or "").lower()
    return label if label in PERIOD_DAYS else DEFAULT_PERIOD


def parse_period_days(period: Optional[str]) -> int:
    """Day count for a period label; unknown labels mean 30 days."""
    return PERIOD_DAYS[normalize_period(period)]


@dataclass
class BenchmarkItem:
    name: str
    symbol: str
    return_pct: Decimal
    diff: Decimal


@dataclass
class BenchmarkResult:
    period: str
    user_return: Decimal
    start_date: str
    end_date: str
    benchmarks: list[BenchmarkItem] = field(default_factory=list)


class BenchmarkService:
    """Compares the user's realized return with each benchmark independently."""

    def __init__(self, store: SnapshotStore, market_data: MarketDataService):
        self._store = store
        self._market_data = market_data

    def _user_return(
        self, user_id: str, days: int, now: datetime
    ) -> tuple[float, datetime, datetime]:
        start, end = now - timedelta(days=days), now
        snapshots = self._store.list_snapshots(user_id, start)
        if len(snapshots) < 2:
            logger.warning("Benchmark: %d snapshot(s) in %dd, user return is 0", len(snapshots), days)
            return 0.0, start, end

        oldest = to_float(snapshots[0].total_value_usd)
        latest = to_float(snapshots[-1].total_value_usd)
        if oldest <= 0:
            logger.warning("Benchmark: oldest snapshot value is %s, user return is 0", oldest)
            return 0.0, start, end

        return (latest - oldest) / oldest * 100, snapshots[0].snapshot_time, snapshots[-1].snapshot_time

    def compare(self, user_id: str, period: str = "30d", now: Optional[datetime] = None) -> BenchmarkResult:
        period = normalize_period(period)
        days = PERIOD_DAYS[period]
        now = now or utc_now()

        user_return, start, end = self._user_return(user_id, days, now)

        items = []
        for name, symbol in BENCHMARKS:
            try:
                index_return = self._market_data.get_historical_return(symbol, days)
            except Exception:
                logger.warning("Benchmark return for %s unavailable, using 0", symbol, exc_info=True)
                index_return = None
            if index_return is None:
                index_return = 0.0
            items.append(
                BenchmarkItem(
                    name=name,
                    symbol=symbol,
                    return_pct=round_money(index_return),
                    diff=round_money(user_return - index_return),
                )
            )

        return BenchmarkResult(
            period=period,
            user_return=round_money(user_return),
            start_date=start.strftime("%Y-%m-%d"),
            end_date=end.strftime("%Y-%m-%d"),
            benchmarks=items,
        )
