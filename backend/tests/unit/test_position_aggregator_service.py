"""Unit tests for PositionAggregatorService."""

import threading
from dataclasses import dataclass
from decimal import Decimal

import pytest

from integrations.defi_protocol import Position, Token
from integrations.defi_registry import DeFiRegistry
from integrations.source_protocol import ErrorCategory
from services.position_aggregator_service import PositionAggregatorService
from tests.fixtures.mocks import MockDeFiProtocol, make_position
from utils.fan_out import FanOut


@dataclass
class Wallet:
    address: str
    chain: str = "ethereum"


@pytest.fixture
def fan_out():
    return FanOut(max_workers=4, timeout_seconds=5)


def _service(fan_out, *protocols):
    registry = DeFiRegistry(fan_out=fan_out)
    for p in protocols:
        registry.register(p)
    return PositionAggregatorService(registry, fan_out)


class TestGetPositions:
    def test_no_wallets_short_circuits(self, fan_out):
        protocol = MockDeFiProtocol()
        result = _service(fan_out, protocol).get_positions([])
        assert result.positions == []
        assert result.total_value == Decimal("0.00")
        assert protocol.calls == []

    def test_union_across_wallets_and_protocols(self, fan_out):
        aave = MockDeFiProtocol("aave", {"0x1": [make_position("aave", 100.0)]})
        lido = MockDeFiProtocol(
            "lido",
            {
                "0x1": [make_position("lido", 250.5, position_type="staking")],
                "0x2": [make_position("lido", 49.5, position_type="staking")],
            },
            protocol_type="staking",
        )
        service = _service(fan_out, aave, lido)

        result = service.get_positions([Wallet("0x1"), Wallet("0x2")])

        assert len(result.positions) == 3
        assert result.total_value == Decimal("400.00")
        assert {p.wallet_address for p in result.positions} == {"0x1", "0x2"}
        assert result.errors == []
        assert not result.cancelled

    def test_three_of_five_wallets_fail(self, fan_out):
        """Failures are logged and dropped; the two healthy wallets still come back."""
        wallets = [Wallet(f"0x{i}") for i in range(5)]
        protocol = MockDeFiProtocol(
            positions={w.address: [make_position(value_usd=10.0)] for w in wallets},
            failing_addresses={"0x0", "0x2", "0x4"},
        )
        # Query the protocol directly so an adapter failure fails the wallet task
        result = _service(fan_out, protocol).get_positions(wallets, protocol="mockfi")

        assert sorted(p.wallet_address for p in result.positions) == ["0x1", "0x3"]
        assert result.total_value == Decimal("20.00")
        assert [e.source for e in result.errors] == ["0x0", "0x2", "0x4"]
        assert all(e.category == ErrorCategory.CONNECTION for e in result.errors)

    def test_adapter_failure_inside_registry_is_isolated(self, fan_out):
        good = MockDeFiProtocol("good", {"0x1": [make_position("good", 5.0)]})
        bad = MockDeFiProtocol("bad", failing_addresses={"0x1"})
        result = _service(fan_out, good, bad).get_positions([Wallet("0x1")])
        assert [p.protocol for p in result.positions] == ["good"]
        assert result.errors == []

    def test_first_deposit_token_represents_position(self, fan_out):
        position = Position(
            protocol="uni",
            protocol_name="Uniswap",
            type="liquidity",
            chain="ethereum",
            value_usd=1234.5678,
            apy=12.345,
            deposit_tokens=[Token("ETH", 0.123456789, 600.0), Token("USDC", 634.5, 634.5)],
        )
        protocol = MockDeFiProtocol("uni", {"0x1": [position]})

        item = _service(fan_out, protocol).get_positions([Wallet("0x1")]).positions[0]

        assert item.token == "ETH"
        assert item.amount == Decimal("0.1235")
        assert item.value_usd == Decimal("1234.57")
        assert item.apy == Decimal("12.35")
        assert item.protocol_name == "Uniswap"

    def test_position_without_tokens(self, fan_out):
        position = make_position()
        position.deposit_tokens = []
        protocol = MockDeFiProtocol(positions={"0x1": [position]})
        item = _service(fan_out, protocol).get_positions([Wallet("0x1")]).positions[0]
        assert item.token == ""
        assert item.amount == Decimal("0.0000")

    def test_total_rounded_once(self, fan_out):
        protocol = MockDeFiProtocol(
            positions={"0x1": [make_position(value_usd=0.004) for _ in range(3)]}
        )
        result = _service(fan_out, protocol).get_positions([Wallet("0x1")])
        # Each item rounds to 0.00; the raw sum 0.012 rounds to 0.01
        assert all(p.value_usd == Decimal("0.00") for p in result.positions)
        assert result.total_value == Decimal("0.01")

    def test_chain_override(self, fan_out):
        protocol = MockDeFiProtocol(
            positions={"0x1": [make_position(chain="polygon", value_usd=7.0)]},
            chains=["ethereum", "polygon"],
        )
        service = _service(fan_out, protocol)

        assert service.get_positions([Wallet("0x1")]).positions == []
        result = service.get_positions([Wallet("0x1")], chain="polygon")
        assert result.total_value == Decimal("7.00")
        assert protocol.calls[-1] == ("0x1", "polygon")

    def test_wallet_chain_used_by_default(self, fan_out):
        protocol = MockDeFiProtocol(chains=["ethereum", "arbitrum"])
        _service(fan_out, protocol).get_positions([Wallet("0x1", chain="arbitrum")])
        assert protocol.calls == [("0x1", "arbitrum")]

    def test_unsupported_chain_for_protocol_filter(self, fan_out):
        protocol = MockDeFiProtocol(chains=["ethereum"])
        result = _service(fan_out, protocol).get_positions(
            [Wallet("0x1")], chain="bsc", protocol="mockfi"
        )
        assert result.positions == []
        assert len(result.errors) == 1
        assert protocol.calls == []

    def test_cancellation_keeps_finished_wallets(self):
        release = threading.Event()
        fast = MockDeFiProtocol("fast", {"0xfast": [make_position("fast", 1.0)]})
        slow = MockDeFiProtocol(
            "slow",
            {"0xslow": [make_position("slow", 2.0, chain="arbitrum")]},
            chains=["arbitrum"],
            delay_event=release,
        )
        fan_out = FanOut(max_workers=4)
        registry = DeFiRegistry(fan_out=fan_out)
        registry.register(fast)
        registry.register(slow)
        service = PositionAggregatorService(registry, fan_out)

        cancel = threading.Event()
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        try:
            result = service.get_positions(
                [Wallet("0xfast"), Wallet("0xslow", chain="arbitrum")], cancel_event=cancel
            )
        finally:
            release.set()
            timer.cancel()

        assert result.cancelled
        assert [p.wallet_address for p in result.positions] == ["0xfast"]

    def test_cancel_event_reaches_the_registry(self):
        lido = MockDeFiProtocol("lido", {"0x1": [make_position("lido")]})
        fan_out = FanOut(max_workers=2)
        registry = DeFiRegistry(fan_out=fan_out)
        registry.register(lido)
        cancel = threading.Event()
        cancel.set()

        result = PositionAggregatorService(registry, fan_out).get_positions(
            [Wallet("0x1")], protocol="lido", cancel_event=cancel
        )

        assert result.cancelled
        assert result.positions == []
        assert lido.calls == []


class TestStatsAndProtocols:
    def test_group_sums(self, fan_out):
        aave = MockDeFiProtocol(
            "aave",
            {"0x1": [make_position("aave", 100.0), make_position("aave", 50.0, chain="polygon")]},
            chains=["ethereum", "polygon"],
        )
        lido = MockDeFiProtocol(
            "lido", {"0x1": [make_position("lido", 25.0, position_type="staking")]},
            protocol_type="staking",
        )
        service = _service(fan_out, aave, lido)

        stats = service.get_stats([Wallet("0x1"), Wallet("0x1", chain="polygon")])

        assert stats.position_count == 3
        assert stats.total_value_locked == Decimal("175.00")
        assert stats.by_protocol == {"aave": Decimal("150.00"), "lido": Decimal("25.00")}
        assert stats.by_chain == {"ethereum": Decimal("125.00"), "polygon": Decimal("50.00")}
        assert stats.by_type == {"lending": Decimal("150.00"), "staking": Decimal("25.00")}

    def test_protocols(self, fan_out):
        service = _service(
            fan_out,
            MockDeFiProtocol("aave", chains=["ethereum", "polygon"]),
            MockDeFiProtocol("lido", protocol_type="staking"),
        )
        infos = service.get_protocols()
        assert [(i.name, i.chains, i.types, i.is_active) for i in infos] == [
            ("Aave", ["ethereum", "polygon"], ["lending"], True),
            ("Lido", ["ethereum"], ["staking"], True),
        ]
