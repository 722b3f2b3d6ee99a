"""Typed exception hierarchy for upstream source errors.

Provides structured exceptions for differentiated error handling
(auth errors vs transient network errors vs data issues). Every
fan-out and gateway caller treats these as per-source, non-fatal.
"""


class ProviderError(Exception):
    """Base exception for all upstream source errors.

    Carries the provider name so callers can identify which source failed.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)


class ProviderAuthError(ProviderError):
    """API key missing, expired, or rejected (HTTP 401/403)."""

    pass


class ProviderConnectionError(ProviderError):
    """Network failures: timeouts, DNS resolution, connection refused.

    Retriable by default.
    """

    def __init__(self, message: str, provider_name: str = "", retriable: bool = True):
        self.retriable = retriable
        super().__init__(message, provider_name)


class ProviderAPIError(ProviderError):
    """HTTP 4xx/5xx responses, or an explicit error status in the body."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the source."""

    pass


class ProtocolNotFoundError(ProviderError, LookupError):
    """No DeFi protocol adapter is registered under the requested name."""

    def __init__(self, protocol: str):
        self.protocol = protocol
        super().__init__(f"DeFi protocol '{protocol}' is not registered", protocol)


class UnsupportedChainError(ProviderError, ValueError):
    """A protocol adapter was asked for a chain it does not support."""

    def __init__(self, protocol: str, chain: str):
        self.chain = chain
        super().__init__(f"DeFi protocol '{protocol}' does not support chain '{chain}'", protocol)
