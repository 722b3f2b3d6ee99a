"""Health score service: weighted multi-dimension score of current holdings."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from services.snapshot_store import SnapshotStore
from utils.rounding import round_money, to_float

logger = logging.getLogger(__name__)

NO_DATA_ADVICE = "No asset data available, add assets first"
ALL_GOOD_ADVICE = "Portfolio is in good health, keep it up"

# (min score, level), checked in order
LEVELS = ((80, "excellent"), (60, "good"), (40, "fair"))

# Distinct platform count -> points
PLATFORM_POINTS = {0: 0.0, 1: 5.0, 2: 10.0, 3: 15.0}


@dataclass
class HealthDimension:
    category: str
    score: Decimal
    max_score: int
    weight: Decimal
    description: str
    suggestion: str
    value: Decimal


@dataclass
class HealthScoreResult:
    score: Decimal = Decimal("0.00")
    level: str = "poor"
    details: list[HealthDimension] = field(default_factory=list)
    weakest: str = "cash_buffer"
    advice: list[str] = field(default_factory=list)


def score_level(score: float) -> str:
    for threshold, level in LEVELS:
        if score >= threshold:
            return level
    return "poor"


def cash_buffer_score(ratio: float) -> float:
    return min(ratio / 0.25 * 25, 25.0)


def concentration_score(ratio: float) -> float:
    if ratio <= 0.3:
        return 30.0
    if ratio >= 0.8:
        return 0.0
    return 30 * (0.8 - ratio) / 0.5


def platform_score(count: int) -> float:
    return PLATFORM_POINTS.get(count, 20.0)


def volatility_score(ratio: float) -> float:
    return min(ratio / 0.6 * 25, 25.0)


def _cash_suggestion(ratio: float) -> str:
    if ratio < 0.1:
        return "Raise stablecoin holdings to 10-25% of total assets to absorb market swings"
    if ratio < 0.25:
        return "Stablecoin share is low, consider adding USDC/USDT"
    return ""


def _concentration_suggestion(ratio: float) -> str:
    if ratio > 0.5:
        return "Concentration too high, diversify to reduce single-asset risk"
    if ratio > 0.3:
        return "Largest single asset is slightly heavy, consider spreading further"
    return ""


def _platform_suggestion(count: int) -> str:
    if count < 2:
        return "Only one platform in use, spread assets across platforms"
    if count < 4:
        return "Consider adding more platforms to reduce platform risk"
    return ""


def _volatility_suggestion(ratio: float) -> str:
    if ratio < 0.3:
        return "Blue-chip (BTC/ETH) share is low, consider increasing it for stability"
    if ratio < 0.6:
        return "Consider a larger BTC/ETH allocation"
    return ""


class HealthScoreService:
    """Scores the current holding breakdown of a user.

    Args:
        store: Snapshot store providing the current details.
        stablecoins: Symbols counted towards the cash buffer.
        bluechips: Symbols counted as low-volatility holdings.
    """

    def __init__(self, store: SnapshotStore, stablecoins: Iterable[str], bluechips: Iterable[str]):
        self._store = store
        self._stablecoins = frozenset(s.upper() for s in stablecoins)
        self._bluechips = frozenset(s.upper() for s in bluechips)

    def get_health_score(self, user_id: str) -> HealthScoreResult:
        total = stable = bluechip = max_single = 0.0
        platforms = set()
        for detail in self._store.list_details(user_id):
            value = to_float(detail.value_usd)
            symbol = (detail.asset_symbol or "").upper()
            total += value
            max_single = max(max_single, value)
            if symbol in self._stablecoins:
                stable += value
            if symbol in self._bluechips:
                bluechip += value
            if detail.source_type:
                platforms.add(detail.source_type)

        if total <= 0:
            return HealthScoreResult(advice=[NO_DATA_ADVICE])

        stable_ratio = stable / total
        single_ratio = max_single / total
        bluechip_ratio = bluechip / total
        platform_count = len(platforms)

        scored = [
            (
                "cash_buffer", cash_buffer_score(stable_ratio), 25,
                "Stablecoin (USDC/USDT/DAI/BUSD) share, full score at 25%+",
                _cash_suggestion(stable_ratio), stable_ratio * 100,
            ),
            (
                "concentration", concentration_score(single_ratio), 30,
                "Largest single asset share, full score below 30%, 0 above 80%",
                _concentration_suggestion(single_ratio), single_ratio * 100,
            ),
            (
                "platform_diversity", platform_score(platform_count), 20,
                "Number of platforms used, full score at 4+, 5 points for 1",
                _platform_suggestion(platform_count), float(platform_count),
            ),
            (
                "volatility", volatility_score(bluechip_ratio), 25,
                "Blue-chip (BTC/ETH) share, full score above 60%",
                _volatility_suggestion(bluechip_ratio), bluechip_ratio * 100,
            ),
        ]

        details = []
        composite = 0.0
        weakest, weakest_ratio = scored[0][0], None
        for category, score, max_score, description, suggestion, value in scored:
            composite += score
            ratio = score / max_score
            # Strict comparison keeps the first dimension on ties
            if weakest_ratio is None or ratio < weakest_ratio:
                weakest, weakest_ratio = category, ratio
            details.append(
                HealthDimension(
                    category=category,
                    score=round_money(score),
                    max_score=max_score,
                    weight=Decimal(max_score) / 100,
                    description=description,
                    suggestion=suggestion,
                    value=round_money(value),
                )
            )

        advice = [d.suggestion for d in details if d.suggestion] or [ALL_GOOD_ADVICE]
        result = HealthScoreResult(
            score=round_money(composite),
            level=score_level(composite),
            details=details,
            weakest=weakest,
            advice=advice,
        )
        logger.info("Health score for %s: %s (%s), weakest %s", user_id, result.score, result.level, weakest)
        return result
