"""AssetSnapshot model - append-only record of total portfolio value."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, Index, Numeric, String

from database import Base
from models.utils import generate_uuid, utc_now


class AssetSnapshot(Base):
    """Total portfolio value for one user at one point in time.

    Snapshots are only ever appended, never updated. Analytics rely solely
    on ascending ``snapshot_time`` order; several snapshots may share a
    calendar day.
    """

    __tablename__ = "asset_snapshots"
    __table_args__ = (
        Index("ix_asset_snapshots_user_time", "user_id", "snapshot_time"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False)
    snapshot_time = Column(DateTime, nullable=False, default=utc_now)
    total_value_usd = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    # Breakdown by source type, recorded at refresh time
    cex_value_usd = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    blockchain_value_usd = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    manual_value_usd = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    created_at = Column(DateTime, default=utc_now)
