"""DeFi position aggregation across every wallet and protocol adapter."""

import logging
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from functools import partial
from typing import Optional, Protocol

from integrations.defi_protocol import DeFiProtocol, Position, ProtocolInfo
from integrations.defi_registry import DeFiRegistry
from integrations.source_protocol import SourceError, classify_error
from utils.fan_out import FanOut
from utils.rounding import round_amount, round_money

logger = logging.getLogger(__name__)


class WalletRef(Protocol):
    """Anything with an address and chain (e.g. the WalletAddress model)."""

    address: str
    chain: str


@dataclass
class PositionItem:
    """One position flattened for display.

    ``token``/``amount`` are the position's first deposit token; the other
    legs of multi-token positions are not reported.
    """

    protocol: str
    protocol_name: str
    type: str
    chain: str
    token: str
    amount: Decimal
    value_usd: Decimal
    apy: Decimal
    wallet_address: str


@dataclass
class PositionsResult:
    positions: list[PositionItem] = field(default_factory=list)
    total_value: Decimal = Decimal("0.00")
    errors: list[SourceError] = field(default_factory=list)
    cancelled: bool = False


@dataclass
class DeFiStats:
    total_value_locked: Decimal = Decimal("0.00")
    position_count: int = 0
    by_protocol: dict[str, Decimal] = field(default_factory=dict)
    by_chain: dict[str, Decimal] = field(default_factory=dict)
    by_type: dict[str, Decimal] = field(default_factory=dict)


def _to_item(position: Position, wallet_address: str) -> PositionItem:
    token, amount = "", 0.0
    if position.deposit_tokens:
        first = position.deposit_tokens[0]
        token, amount = first.symbol, first.amount
    return PositionItem(
        protocol=position.protocol,
        protocol_name=position.protocol_name,
        type=position.type,
        chain=position.chain,
        token=token,
        amount=round_amount(amount),
        value_usd=round_money(position.value_usd),
        apy=round_money(position.apy),
        wallet_address=wallet_address,
    )


def _group_sum(items: list[PositionItem], key) -> dict[str, Decimal]:
    groups: dict[str, Decimal] = {}
    for item in items:
        k = key(item)
        groups[k] = groups.get(k, Decimal("0")) + item.value_usd
    return {k: round_money(v) for k, v in groups.items()}


class PositionAggregatorService:
    """Collects DeFi positions for a set of wallets.

    One fan-out task per wallet; each task asks the registry for every
    protocol (which fans out again per adapter) or for a single protocol
    when a filter is given. Failed wallets are logged and dropped.
    """

    def __init__(self, registry: DeFiRegistry, fan_out: Optional[FanOut] = None):
        self._registry = registry
        self._fan_out = fan_out or FanOut()

    def get_positions(
        self,
        wallets: list[WalletRef],
        chain: Optional[str] = None,
        protocol: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PositionsResult:
        """Union of all positions reachable from ``wallets``.

        Args:
            wallets: Wallets to query. Empty short-circuits without any query.
            chain: Chain to query. Defaults to each wallet's own chain.
            protocol: Restrict to one registered protocol.
            cancel_event: Stops waiting for slow wallets when set.
        """
        if not wallets:
            return PositionsResult()

        tasks = {}
        addresses = {}
        for i, wallet in enumerate(wallets):
            query_chain = chain or wallet.chain
            # Index keeps keys unique if a wallet is listed twice
            key = f"{wallet.address}:{query_chain}#{i}"
            addresses[key] = wallet.address
            if protocol:
                tasks[key] = partial(
                    self._registry.get_positions_by_protocol,
                    wallet.address,
                    query_chain,
                    protocol,
                    cancel_event=cancel_event,
                )
            else:
                tasks[key] = partial(
                    self._registry.get_all_positions, wallet.address, query_chain, cancel_event=cancel_event
                )

        outcome = self._fan_out.run(tasks, cancel_event=cancel_event)

        errors = []
        for key, exc in outcome.ordered_errors():
            logger.warning("DeFi positions failed for wallet %s: %s", addresses[key], exc)
            errors.append(classify_error(addresses[key], exc))

        items: list[PositionItem] = []
        raw_total = 0.0
        for key, positions in outcome.ordered_results():
            for position in positions:
                items.append(_to_item(position, addresses[key]))
                raw_total += position.value_usd

        logger.info(
            "DeFi positions: %d from %d/%d wallets (%d failed)",
            len(items), len(outcome.results), len(wallets), len(errors),
        )
        return PositionsResult(
            positions=items,
            total_value=round_money(raw_total),
            errors=errors,
            # Inner per-adapter fan-outs also drop slow adapters once the event fires
            cancelled=outcome.cancelled or (cancel_event is not None and cancel_event.is_set()),
        )

    def get_stats(
        self, wallets: list[WalletRef], cancel_event: Optional[threading.Event] = None
    ) -> DeFiStats:
        """Position totals grouped by protocol, chain and type."""
        result = self.get_positions(wallets, cancel_event=cancel_event)
        return DeFiStats(
            total_value_locked=result.total_value,
            position_count=len(result.positions),
            by_protocol=_group_sum(result.positions, lambda p: p.protocol),
            by_chain=_group_sum(result.positions, lambda p: p.chain),
            by_type=_group_sum(result.positions, lambda p: p.type),
        )

    def get_protocols(self) -> list[ProtocolInfo]:
        return self._registry.protocol_info()

    def get_protocol(self, name: str) -> DeFiProtocol:
        """Look up a registered adapter; raises ProtocolNotFoundError."""
        return self._registry.get_protocol(name)
