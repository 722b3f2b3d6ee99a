"""Test fixtures and sample data."""
import json
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import AssetDetail, AssetSnapshot, ExchangeAccount, Strategy, WalletAddress

USER_ID = "default"


def add_snapshot(
    db: Session,
    snapshot_time: datetime,
    total_value: float | Decimal,
    user_id: str = USER_ID,
) -> AssetSnapshot:
    """Append a snapshot with the given total value."""
    snap = AssetSnapshot(
        user_id=user_id,
        snapshot_time=snapshot_time,
        total_value_usd=Decimal(str(total_value)),
    )
    db.add(snap)
    db.flush()
    return snap


def add_detail(
    db: Session,
    symbol: str,
    value_usd: float | Decimal,
    balance: float | Decimal = 1,
    price_usd: float | Decimal | None = None,
    source: str = "binance",
    source_type: str = "cex",
    user_id: str = USER_ID,
) -> AssetDetail:
    """Add a current holding row; price defaults to value / balance."""
    balance = Decimal(str(balance))
    value = Decimal(str(value_usd))
    price = Decimal(str(price_usd)) if price_usd is not None else (value / balance if balance else Decimal("0"))
    detail = AssetDetail(
        user_id=user_id,
        asset_symbol=symbol,
        asset_name=symbol,
        balance=balance,
        price_usd=price,
        value_usd=value,
        source=source,
        source_type=source_type,
    )
    db.add(detail)
    db.flush()
    return detail


@pytest.fixture
def wallet(db: Session) -> WalletAddress:
    """An active Ethereum wallet for the default user."""
    w = WalletAddress(user_id=USER_ID, address="0xabc", chain="ethereum", label="Main")
    db.add(w)
    db.commit()
    return w


@pytest.fixture
def exchange_account(db: Session) -> ExchangeAccount:
    """An active exchange account for the default user."""
    account = ExchangeAccount(user_id=USER_ID, exchange="mockex", label="Trading")
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def rebalance_strategy(db: Session) -> Strategy:
    """60/40 BTC/ETH rebalance strategy with a 5-point threshold."""
    strategy = Strategy(
        user_id=USER_ID,
        name="Core 60/40",
        type="rebalance",
        config=json.dumps(
            {
                "allocations": [
                    {"symbol": "BTC", "percentage": 60},
                    {"symbol": "ETH", "percentage": 40},
                ],
                "threshold": 5,
            }
        ),
    )
    db.add(strategy)
    db.commit()
    return strategy
