"""AssetDetail model - current per-symbol holding row."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, Numeric, String, UniqueConstraint

from database import Base
from models.utils import generate_uuid, utc_now

SOURCE_TYPE_CEX = "cex"
SOURCE_TYPE_BLOCKCHAIN = "blockchain"
SOURCE_TYPE_MANUAL = "manual"

SOURCE_TYPES = (SOURCE_TYPE_CEX, SOURCE_TYPE_BLOCKCHAIN, SOURCE_TYPE_MANUAL)


class AssetDetail(Base):
    """A currently held asset from a single source.

    Overwritten on every refresh and never historized; history lives only
    in ``AssetSnapshot.total_value_usd``.
    """

    __tablename__ = "asset_details"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "asset_symbol", "source", name="uix_asset_detail_source"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    asset_symbol = Column(String, nullable=False)
    asset_name = Column(String, nullable=True)
    balance = Column(Numeric(28, 10), nullable=False, default=Decimal("0"))
    price_usd = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    value_usd = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))  # balance * price_usd
    source = Column(String, nullable=False)  # e.g. "binance", "0xabc...:ethereum"
    source_type = Column(String, nullable=False)  # "cex" | "blockchain" | "manual"
    last_updated = Column(DateTime, default=utc_now, onupdate=utc_now)
