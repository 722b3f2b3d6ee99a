"""Unit tests for SqlSnapshotStore."""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from services.exceptions import StorageError
from services.snapshot_store import DetailInput, SqlSnapshotStore
from tests.fixtures import USER_ID, add_detail, add_snapshot

T0 = datetime(2026, 1, 1, 12, 0)


@pytest.fixture
def store(db):
    return SqlSnapshotStore(db)


class TestListSnapshots:
    def test_ascending_from_since(self, db, store):
        add_snapshot(db, T0 + timedelta(days=2), 300)
        add_snapshot(db, T0, 100)
        add_snapshot(db, T0 + timedelta(days=1), 200)
        add_snapshot(db, T0 - timedelta(days=1), 50)
        add_snapshot(db, T0 + timedelta(days=1), 999, user_id="other")

        snapshots = store.list_snapshots(USER_ID, T0)

        assert [s.total_value_usd for s in snapshots] == [Decimal("100"), Decimal("200"), Decimal("300")]

    def test_since_is_inclusive(self, db, store):
        add_snapshot(db, T0, 100)
        assert len(store.list_snapshots(USER_ID, T0)) == 1


class TestReplaceDetails:
    def test_keeps_manual_rows(self, db, store):
        add_detail(db, "GOLD", 500, source="vault", source_type="manual")
        add_detail(db, "DOGE", 10)

        store.replace_details(
            USER_ID,
            [DetailInput("BTC", Decimal("1"), Decimal("50000"), Decimal("50000.00"), "binance", "cex", "Bitcoin")],
            keep_source_types=["manual"],
        )

        details = store.list_details(USER_ID)
        assert [(d.asset_symbol, d.source_type) for d in details] == [("BTC", "cex"), ("GOLD", "manual")]
        assert details[0].asset_name == "Bitcoin"
        assert details[0].last_updated is not None

    def test_other_users_untouched(self, db, store):
        add_detail(db, "ETH", 10, user_id="other")

        store.replace_details(USER_ID, [])

        assert len(store.list_details("other")) == 1


class TestAppendSnapshot:
    def test_breakdown_stored(self, store):
        snapshot = store.append_snapshot(
            USER_ID,
            total_value_usd=Decimal("30.00"),
            cex_value_usd=Decimal("10.00"),
            blockchain_value_usd=Decimal("15.00"),
            manual_value_usd=Decimal("5.00"),
            snapshot_time=T0,
        )

        assert store.list_snapshots(USER_ID, T0) == [snapshot]
        assert snapshot.blockchain_value_usd == Decimal("15.00")


class TestStorageErrors:
    def test_query_failure_wrapped(self, db, store):
        with patch.object(db, "query", side_effect=OperationalError("SELECT", {}, Exception("disk I/O error"))):
            with pytest.raises(StorageError) as exc_info:
                store.list_snapshots(USER_ID, T0)

        assert exc_info.value.operation == "list_snapshots"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_write_failure_wrapped(self, db, store):
        with patch.object(db, "flush", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            with pytest.raises(StorageError) as exc_info:
                store.append_snapshot(USER_ID, Decimal("1.00"))

        assert exc_info.value.operation == "append_snapshot"
