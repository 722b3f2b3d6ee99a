"""WalletAddress model - a tracked on-chain address."""

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint

from database import Base
from models.utils import generate_uuid, utc_now


class WalletAddress(Base):
    """A blockchain address whose balances and DeFi positions are tracked."""

    __tablename__ = "wallet_addresses"
    __table_args__ = (
        UniqueConstraint("user_id", "address", "chain", name="uix_wallet_address_chain"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    address = Column(String, nullable=False)
    chain = Column(String, nullable=False, default="ethereum")
    label = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)
