"""ExchangeAccount model - a linked centralized exchange."""

from sqlalchemy import Boolean, Column, DateTime, String

from database import Base
from models.utils import generate_uuid, utc_now


class ExchangeAccount(Base):
    """A centralized exchange account.

    API credentials are not stored on the row; the balance source for the
    exchange resolves them from the keychain.
    """

    __tablename__ = "exchange_accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    exchange = Column(String, nullable=False)  # e.g. "binance", "okx"
    label = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)
