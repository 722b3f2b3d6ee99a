"""Strategy model - a saved portfolio strategy with typed JSON config."""

from sqlalchemy import Boolean, Column, DateTime, String, Text

from database import Base
from models.utils import generate_uuid, utc_now


class Strategy(Base):
    """A user strategy (rebalance, DCA, stop-limit).

    ``config`` holds the JSON payload for ``type``; it is parsed into the
    matching variant by ``schemas.strategy.parse_strategy_config``.
    """

    __tablename__ = "strategies"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # "rebalance" | "dca" | "stop_limit"
    config = Column(Text, nullable=False)  # JSON-serialized
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
