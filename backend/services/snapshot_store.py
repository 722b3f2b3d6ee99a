"""Snapshot store: read/write access to asset snapshots and details.

The analytics engines only depend on the ``SnapshotStore`` protocol, so
they can be exercised against any store (tests use the SQL store on an
in-memory database). Storage failures surface as ``StorageError``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import AssetDetail, AssetSnapshot, ExchangeAccount, Strategy, WalletAddress
from models.utils import utc_now
from services.exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass
class DetailInput:
    """A refreshed holding row, before it is written to the store."""

    asset_symbol: str
    balance: Decimal
    price_usd: Decimal
    value_usd: Decimal
    source: str
    source_type: str
    asset_name: Optional[str] = None


class SnapshotStore(Protocol):
    """Read access used by the analytics engines plus the refresh writes."""

    def list_snapshots(self, user_id: str, since: datetime) -> list[AssetSnapshot]:
        """Snapshots at or after ``since``, ascending by ``snapshot_time``."""
        ...

    def list_details(self, user_id: str) -> list[AssetDetail]:
        ...

    def replace_details(
        self, user_id: str, details: list[DetailInput], keep_source_types: Iterable[str] = ()
    ) -> None:
        ...

    def append_snapshot(
        self,
        user_id: str,
        total_value_usd: Decimal,
        cex_value_usd: Decimal = Decimal("0"),
        blockchain_value_usd: Decimal = Decimal("0"),
        manual_value_usd: Decimal = Decimal("0"),
        snapshot_time: Optional[datetime] = None,
    ) -> AssetSnapshot:
        ...


class SqlSnapshotStore:
    """SQLAlchemy-backed SnapshotStore bound to one session.

    Writes only ``flush()``; the API layer owns the commit.
    """

    def __init__(self, db: Session):
        self._db = db

    def list_snapshots(self, user_id: str, since: datetime) -> list[AssetSnapshot]:
        try:
            return (
                self._db.query(AssetSnapshot)
                .filter(
                    AssetSnapshot.user_id == user_id,
                    AssetSnapshot.snapshot_time >= since,
                )
                .order_by(AssetSnapshot.snapshot_time.asc(), AssetSnapshot.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("failed to query asset snapshots", "list_snapshots") from e

    def list_details(self, user_id: str) -> list[AssetDetail]:
        try:
            return (
                self._db.query(AssetDetail)
                .filter(AssetDetail.user_id == user_id)
                .order_by(AssetDetail.asset_symbol, AssetDetail.source)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("failed to query asset details", "list_details") from e

    def replace_details(
        self, user_id: str, details: list[DetailInput], keep_source_types: Iterable[str] = ()
    ) -> None:
        """Overwrite the user's details with ``details``.

        Rows whose ``source_type`` is in ``keep_source_types`` (manual
        entries, typically) are left untouched.
        """
        keep = set(keep_source_types)
        now = utc_now()
        try:
            query = self._db.query(AssetDetail).filter(AssetDetail.user_id == user_id)
            if keep:
                query = query.filter(AssetDetail.source_type.notin_(keep))
            query.delete(synchronize_session=False)

            for d in details:
                self._db.add(
                    AssetDetail(
                        user_id=user_id,
                        asset_symbol=d.asset_symbol,
                        asset_name=d.asset_name,
                        balance=d.balance,
                        price_usd=d.price_usd,
                        value_usd=d.value_usd,
                        source=d.source,
                        source_type=d.source_type,
                        last_updated=now,
                    )
                )
            self._db.flush()
        except SQLAlchemyError as e:
            raise StorageError("failed to replace asset details", "replace_details") from e

    def append_snapshot(
        self,
        user_id: str,
        total_value_usd: Decimal,
        cex_value_usd: Decimal = Decimal("0"),
        blockchain_value_usd: Decimal = Decimal("0"),
        manual_value_usd: Decimal = Decimal("0"),
        snapshot_time: Optional[datetime] = None,
    ) -> AssetSnapshot:
        snapshot = AssetSnapshot(
            user_id=user_id,
            snapshot_time=snapshot_time or utc_now(),
            total_value_usd=total_value_usd,
            cex_value_usd=cex_value_usd,
            blockchain_value_usd=blockchain_value_usd,
            manual_value_usd=manual_value_usd,
        )
        try:
            self._db.add(snapshot)
            self._db.flush()
        except SQLAlchemyError as e:
            raise StorageError("failed to append asset snapshot", "append_snapshot") from e
        return snapshot

    def list_active_wallets(self, user_id: str) -> list[WalletAddress]:
        try:
            return (
                self._db.query(WalletAddress)
                .filter(WalletAddress.user_id == user_id, WalletAddress.is_active.is_(True))
                .order_by(WalletAddress.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("failed to query wallet addresses", "list_active_wallets") from e

    def list_active_exchange_accounts(self, user_id: str) -> list[ExchangeAccount]:
        try:
            return (
                self._db.query(ExchangeAccount)
                .filter(ExchangeAccount.user_id == user_id, ExchangeAccount.is_active.is_(True))
                .order_by(ExchangeAccount.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("failed to query exchange accounts", "list_active_exchange_accounts") from e

    def get_strategy(self, user_id: str, strategy_id: str) -> Optional[Strategy]:
        try:
            return (
                self._db.query(Strategy)
                .filter(Strategy.id == strategy_id, Strategy.user_id == user_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise StorageError("failed to query strategy", "get_strategy") from e
