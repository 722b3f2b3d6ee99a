"""SQLAlchemy ORM models."""

from .asset_detail import AssetDetail
from .asset_snapshot import AssetSnapshot
from .exchange_account import ExchangeAccount
from .strategy import Strategy
from .wallet_address import WalletAddress
from .utils import generate_uuid, utc_now

__all__ = ["AssetDetail", "AssetSnapshot", "ExchangeAccount", "Strategy", "WalletAddress", "generate_uuid", "utc_now"]
