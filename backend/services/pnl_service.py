"""PnL service: daily profit/loss series and multi-window summary."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from models import AssetSnapshot
from models.utils import utc_now
from services.snapshot_store import SnapshotStore
from utils.rounding import round_money, to_float

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 30
SUMMARY_LOOKBACK_DAYS = 90
SUMMARY_WINDOWS = (7, 30, 90)


@dataclass
class DailyPnLPoint:
    date: str  # YYYY-MM-DD
    start_value: Decimal
    end_value: Decimal
    pnl: Decimal
    pnl_percent: Decimal


@dataclass
class DailyPnLResult:
    daily: list[DailyPnLPoint] = field(default_factory=list)
    total_pnl: Decimal = Decimal("0.00")


@dataclass
class PnLPeriod:
    pnl: Decimal = Decimal("0.00")
    pnl_percent: Decimal = Decimal("0.00")
    start_value: Decimal = Decimal("0.00")
    end_value: Decimal = Decimal("0.00")


@dataclass
class PnLSummary:
    total_pnl: Decimal = Decimal("0.00")
    total_pnl_percent: Decimal = Decimal("0.00")
    pnl_7d: PnLPeriod = field(default_factory=PnLPeriod)
    pnl_30d: PnLPeriod = field(default_factory=PnLPeriod)
    pnl_90d: PnLPeriod = field(default_factory=PnLPeriod)
    best_day: Optional[str] = None
    best_day_pnl: Decimal = Decimal("0.00")
    worst_day: Optional[str] = None
    worst_day_pnl: Decimal = Decimal("0.00")


def _percent(pnl: float, start: float) -> float:
    return pnl / start * 100 if start > 0 else 0.0


def daily_series(snapshots: list[AssetSnapshot]) -> tuple[list[DailyPnLPoint], float]:
    """Chain per-day PnL over ascending snapshots.

    Each day ends at its last snapshot and starts at the previous day's end;
    the first day starts at its own first snapshot. Returns the points and
    the unrounded total.
    """
    # date -> [first value, last value], in first-seen order
    days: dict[str, list[float]] = {}
    for snap in snapshots:
        key = snap.snapshot_time.strftime("%Y-%m-%d")
        value = to_float(snap.total_value_usd)
        if key in days:
            days[key][1] = value
        else:
            days[key] = [value, value]

    points = []
    total = 0.0
    prev_end: Optional[float] = None
    for key, (first, last) in days.items():
        start = first if prev_end is None else prev_end
        pnl = last - start
        total += pnl
        points.append(
            DailyPnLPoint(
                date=key,
                start_value=round_money(start),
                end_value=round_money(last),
                pnl=round_money(pnl),
                pnl_percent=round_money(_percent(pnl, start)),
            )
        )
        prev_end = last
    return points, total


def period_pnl(snapshots: list[AssetSnapshot], window_start: datetime, end_value: float) -> PnLPeriod:
    """PnL from the first snapshot at or after ``window_start`` to ``end_value``.

    Falls back to the earliest snapshot when none is inside the window or the
    in-window start is worth 0.
    """
    start_value = None
    for snap in snapshots:
        if snap.snapshot_time >= window_start:
            start_value = to_float(snap.total_value_usd)
            break
    if not start_value:
        start_value = to_float(snapshots[0].total_value_usd)

    pnl = end_value - start_value
    return PnLPeriod(
        pnl=round_money(pnl),
        pnl_percent=round_money(_percent(pnl, start_value)),
        start_value=round_money(start_value),
        end_value=round_money(end_value),
    )


class PnLService:
    """Derives profit/loss from irregularly timed snapshots."""

    def __init__(self, store: SnapshotStore):
        self._store = store

    def get_daily_pnl(
        self, user_id: str, days: int = DEFAULT_DAYS, now: Optional[datetime] = None
    ) -> DailyPnLResult:
        if days <= 0:
            days = DEFAULT_DAYS
        now = now or utc_now()

        snapshots = self._store.list_snapshots(user_id, now - timedelta(days=days))
        if len(snapshots) < 2:
            logger.info("Daily PnL: %d snapshot(s) in %dd window", len(snapshots), days)
            return DailyPnLResult()

        points, total = daily_series(snapshots)
        return DailyPnLResult(daily=points, total_pnl=round_money(total))

    def get_summary(self, user_id: str, now: Optional[datetime] = None) -> PnLSummary:
        now = now or utc_now()
        snapshots = self._store.list_snapshots(user_id, now - timedelta(days=SUMMARY_LOOKBACK_DAYS))
        if not snapshots:
            return PnLSummary()

        current = to_float(snapshots[-1].total_value_usd)
        periods = {
            window: period_pnl(snapshots, now - timedelta(days=window), current)
            for window in SUMMARY_WINDOWS
        }

        summary = PnLSummary(
            total_pnl=periods[90].pnl,
            total_pnl_percent=periods[90].pnl_percent,
            pnl_7d=periods[7],
            pnl_30d=periods[30],
            pnl_90d=periods[90],
        )

        if len(snapshots) >= 2:
            points, _ = daily_series(snapshots)
            ranked = sorted(points, key=lambda p: p.pnl, reverse=True)
            summary.best_day, summary.best_day_pnl = ranked[0].date, ranked[0].pnl
            summary.worst_day, summary.worst_day_pnl = ranked[-1].date, ranked[-1].pnl

        logger.info(
            "PnL summary for %s: 7d=%s 30d=%s 90d=%s",
            user_id, summary.pnl_7d.pnl, summary.pnl_30d.pnl, summary.pnl_90d.pnl,
        )
        return summary
