"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load API key fields from the OS keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./portfolio.db"

    # Market data / chain explorer API keys (optional)
    ETHERSCAN_API_KEY: str = ""
    BSCSCAN_API_KEY: str = ""
    POLYGONSCAN_API_KEY: str = ""
    COINGECKO_API_KEY: str = ""

    # Exchange and NFT API credentials (optional)
    BINANCE_API_KEY: str = ""
    BINANCE_API_SECRET: str = ""
    ALCHEMY_API_KEY: str = ""

    # Analytics
    DEFAULT_USER_ID: str = "default"
    DEFAULT_CURRENCY: str = "USD"
    # Static allowlists for the health score; kept as data so they can be
    # externalized without touching the scoring logic.
    STABLECOIN_SYMBOLS: list[str] = ["USDC", "USDT", "DAI", "BUSD"]
    BLUECHIP_SYMBOLS: list[str] = ["BTC", "ETH"]

    # Fan-out and caching
    FANOUT_MAX_WORKERS: int = 8
    FANOUT_TIMEOUT_SECONDS: float = 30.0
    GAS_CACHE_TTL_SECONDS: float = 15.0
    NFT_CACHE_TTL_SECONDS: float = 3600.0

    @field_validator("STABLECOIN_SYMBOLS", "BLUECHIP_SYMBOLS", mode="before")
    @classmethod
    def split_symbols(cls, v: Any) -> Any:
        """Normalize allowlist symbols to uppercase.

        Environment values must be JSON arrays (``'["USDC","DAI"]'``);
        a comma-separated string is also accepted when passed directly.
        """
        if isinstance(v, str):
            v = [s for s in v.split(",") if s.strip()]
        if isinstance(v, (list, tuple, set, frozenset)):
            return [str(s).strip().upper() for s in v]
        return v

    @field_validator("FANOUT_MAX_WORKERS")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"FANOUT_MAX_WORKERS must be >= 1, got {v}")
        return v

    @field_validator("GAS_CACHE_TTL_SECONDS", "NFT_CACHE_TTL_SECONDS", "FANOUT_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"duration must be positive, got {v}")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    # Passed to FastAPI; unhandled errors render tracebacks when on
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]


settings = Settings()
