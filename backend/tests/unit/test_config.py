"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError

from config import Settings


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestDefaults:
    def test_analytics_defaults(self):
        s = _settings()
        assert s.DEFAULT_USER_ID == "default"
        assert s.DEFAULT_CURRENCY == "USD"
        assert s.GAS_CACHE_TTL_SECONDS == 15.0
        assert s.NFT_CACHE_TTL_SECONDS == 3600.0
        assert s.FANOUT_MAX_WORKERS == 8
        assert s.FANOUT_TIMEOUT_SECONDS == 30.0
        assert s.STABLECOIN_SYMBOLS == ["USDC", "USDT", "DAI", "BUSD"]
        assert s.BLUECHIP_SYMBOLS == ["BTC", "ETH"]


class TestSymbolAllowlists:
    def test_uppercased(self):
        s = _settings(STABLECOIN_SYMBOLS=["usdc", " dai "])
        assert s.STABLECOIN_SYMBOLS == ["USDC", "DAI"]

    def test_comma_separated_string(self):
        s = _settings(BLUECHIP_SYMBOLS="btc,eth,sol")
        assert s.BLUECHIP_SYMBOLS == ["BTC", "ETH", "SOL"]

    def test_json_array_from_env(self, monkeypatch):
        monkeypatch.setenv("STABLECOIN_SYMBOLS", '["usdt", "fdusd"]')
        assert _settings().STABLECOIN_SYMBOLS == ["USDT", "FDUSD"]


class TestNumericValidation:
    @pytest.mark.parametrize("workers", [0, -1])
    def test_max_workers_must_be_positive(self, workers):
        with pytest.raises(ValidationError, match="FANOUT_MAX_WORKERS"):
            _settings(FANOUT_MAX_WORKERS=workers)

    @pytest.mark.parametrize("field", ["GAS_CACHE_TTL_SECONDS", "NFT_CACHE_TTL_SECONDS", "FANOUT_TIMEOUT_SECONDS"])
    def test_durations_must_be_positive(self, field):
        with pytest.raises(ValidationError, match="positive"):
            _settings(**{field: 0})

    def test_ttl_from_env(self, monkeypatch):
        monkeypatch.setenv("GAS_CACHE_TTL_SECONDS", "5")
        assert _settings().GAS_CACHE_TTL_SECONDS == 5.0


class TestDebug:
    def test_off_by_default(self, monkeypatch):
        monkeypatch.delenv("DEBUG", raising=False)
        assert _settings().DEBUG is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        assert _settings().DEBUG is True
