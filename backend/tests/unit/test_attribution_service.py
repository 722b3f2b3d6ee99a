"""Unit tests for AttributionService."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from services.attribution_service import AttributionService, format_range
from services.snapshot_store import SqlSnapshotStore
from tests.fixtures import add_detail, add_snapshot

NOW = datetime(2026, 3, 10, 12, 0)


@pytest.fixture
def service(db):
    return AttributionService(SqlSnapshotStore(db))


class TestFormatRange:
    @pytest.mark.parametrize("days, label", [(1, "1d"), (7, "7d"), (30, "30d"), (14, "7d")])
    def test_labels(self, days, label):
        assert format_range(days) == label


class TestGetAttribution:
    def test_fewer_than_two_snapshots(self, db, service):
        add_snapshot(db, NOW - timedelta(days=1), 1000)
        add_detail(db, "BTC", 1000)

        result = service.get_attribution("default", now=NOW)

        assert result.range == "7d"
        assert result.currency == "USD"
        assert result.total_change == Decimal("0.00")
        assert result.assets == []
        assert result.start_time is None

    def test_estimated_start_price(self, db, service):
        """1000 -> 1200 with one asset at 10 x 120: start price 100, all price effect."""
        add_snapshot(db, NOW - timedelta(days=6), 1000)
        add_snapshot(db, NOW - timedelta(hours=1), 1200)
        add_detail(db, "ETH", 1200, balance=10, price_usd=120)

        result = service.get_attribution("default", now=NOW)

        assert result.total_change == Decimal("200.00")
        asset = result.assets[0]
        assert asset.symbol == "ETH"
        assert asset.start_price == Decimal("100.00")
        assert asset.start_balance == asset.end_balance
        assert asset.start_value == Decimal("1000.00")
        assert asset.price_effect == Decimal("200.00")
        assert asset.quantity_effect == Decimal("0.00")
        assert asset.interaction_effect == Decimal("0.00")
        assert result.price_effect == Decimal("200.00")
        assert result.quantity_effect == Decimal("0.00")
        assert result.interaction_effect == Decimal("0.00")
        assert result.start_time == NOW - timedelta(days=6)
        assert result.end_time == NOW - timedelta(hours=1)

    def test_effects_sum_across_assets(self, db, service):
        add_snapshot(db, NOW - timedelta(days=5), 1500)
        add_snapshot(db, NOW - timedelta(days=1), 2000)
        add_detail(db, "BTC", 1500, balance=Decimal("0.03"), price_usd=50000)
        add_detail(db, "USDC", 500, balance=500, price_usd=1, source="wallet", source_type="blockchain")

        result = service.get_attribution("default", now=NOW)

        # Start prices are scaled by 1500/2000 = 0.75
        by_symbol = {a.symbol: a for a in result.assets}
        assert by_symbol["BTC"].start_price == Decimal("37500.00")
        assert by_symbol["BTC"].price_effect == Decimal("375.00")
        assert by_symbol["USDC"].price_effect == Decimal("125.00")
        assert result.price_effect == Decimal("500.00")
        assert result.total_change == Decimal("500.00")

    def test_window_includes_snapshot_exactly_days_ago(self, db, service):
        add_snapshot(db, NOW - timedelta(days=7), 800)
        add_snapshot(db, NOW, 1000)
        result = service.get_attribution("default", days=7, now=NOW)
        assert result.total_change == Decimal("200.00")

    def test_snapshots_before_window_ignored(self, db, service):
        add_snapshot(db, NOW - timedelta(days=20), 100)
        add_snapshot(db, NOW - timedelta(hours=20), 900)
        add_snapshot(db, NOW - timedelta(hours=2), 1000)
        result = service.get_attribution("default", days=1, now=NOW)
        assert result.range == "1d"
        assert result.total_change == Decimal("100.00")

    def test_zero_latest_total_gives_zero_start(self, db, service):
        add_snapshot(db, NOW - timedelta(days=3), 500)
        add_snapshot(db, NOW - timedelta(days=1), 0)
        add_detail(db, "BTC", 100, balance=1, price_usd=100)

        result = service.get_attribution("default", now=NOW)

        asset = result.assets[0]
        assert asset.start_balance == Decimal("0.0")
        assert asset.start_price == Decimal("0.00")
        # With no start estimate the whole holding reads as a quantity change
        assert asset.quantity_effect == Decimal("0.00")
        assert asset.interaction_effect == Decimal("100.00")
        assert result.total_change == Decimal("-500.00")

    def test_non_positive_days_default_to_week(self, db, service):
        result = service.get_attribution("default", days=0, currency="EUR", now=NOW)
        assert result.range == "7d"
        assert result.currency == "EUR"
