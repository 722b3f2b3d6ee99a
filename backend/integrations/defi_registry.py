"""Registry of DeFi protocol adapters.

The registry is an ordinary object built once at startup and handed to
the services that need it:
- Tracking which protocol adapters are available
- Looking up a single adapter by name
- Querying every adapter for one address concurrently
"""

import logging
import threading
from functools import partial
from typing import Optional

from integrations.defi_protocol import DEFAULT_CHAIN, DeFiProtocol, Position, ProtocolInfo
from integrations.exceptions import ProtocolNotFoundError, UnsupportedChainError
from utils.fan_out import FanOut

logger = logging.getLogger(__name__)


class DeFiRegistry:
    """Registry for DeFi protocol adapters.

    Example:
        registry = DeFiRegistry(fan_out=FanOut(max_workers=4))
        registry.register(LidoAdapter(etherscan, prices))
        positions = registry.get_all_positions("0xabc...", "ethereum")
    """

    def __init__(self, fan_out: Optional[FanOut] = None):
        self._protocols: dict[str, DeFiProtocol] = {}
        self._fan_out = fan_out or FanOut()

    def register(self, protocol: DeFiProtocol) -> None:
        """Register an adapter under its ``name``, replacing any previous one."""
        self._protocols[protocol.name] = protocol

    def get_protocol(self, name: str) -> DeFiProtocol:
        """Get an adapter by name.

        Raises:
            ProtocolNotFoundError: If no adapter is registered under ``name``.
        """
        if name not in self._protocols:
            raise ProtocolNotFoundError(name)
        return self._protocols[name]

    def list_protocols(self) -> list[DeFiProtocol]:
        return list(self._protocols.values())

    def protocol_info(self) -> list[ProtocolInfo]:
        """Static description of every registered adapter."""
        return [
            ProtocolInfo(
                name=p.display_name,
                chains=list(p.supported_chains),
                types=[p.protocol_type],
                is_active=True,
            )
            for p in self._protocols.values()
        ]

    def get_all_positions(
        self,
        address: str,
        chain: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Position]:
        """Query every adapter that supports ``chain`` for ``address``.

        Adapters run concurrently. A failing adapter is logged and skipped;
        the positions of the others are still returned. Once ``cancel_event``
        is set, adapters that have not answered are abandoned.
        """
        chain = chain or DEFAULT_CHAIN
        tasks = {
            name: partial(protocol.get_positions, address, chain)
            for name, protocol in self._protocols.items()
            if chain in protocol.supported_chains
        }
        if not tasks:
            return []

        outcome = self._fan_out.run(tasks, cancel_event=cancel_event)
        for name, exc in outcome.ordered_errors():
            logger.warning(
                "DeFi protocol %s failed for %s on %s: %s", name, address, chain, exc
            )

        positions: list[Position] = []
        for _, protocol_positions in outcome.ordered_results():
            positions.extend(protocol_positions or [])
        return positions

    def get_positions_by_protocol(
        self,
        address: str,
        chain: Optional[str],
        protocol_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Position]:
        """Query a single adapter.

        Returns an empty list without calling the adapter when
        ``cancel_event`` is already set.

        Raises:
            ProtocolNotFoundError: Unknown protocol.
            UnsupportedChainError: The adapter does not serve ``chain``.
            ProviderError: Whatever the adapter raises.
        """
        protocol = self.get_protocol(protocol_name)
        chain = chain or DEFAULT_CHAIN
        if chain not in protocol.supported_chains:
            raise UnsupportedChainError(protocol_name, chain)
        if cancel_event is not None and cancel_event.is_set():
            return []
        return protocol.get_positions(address, chain) or []
