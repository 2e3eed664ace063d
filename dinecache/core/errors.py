"""Exceptions raised inside a storage or provider boundary.

None of these are meant to escape the tier that raised them; each tier
logs and converts them to an absent / empty / local-only result.
"""


class DineCacheError(Exception):
    """Base class for cache-layer errors."""


class SharedStoreUnavailable(DineCacheError):
    """Shared tier is not configured or could not be reached."""


class ProviderError(DineCacheError):
    """Upstream places provider call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ProviderNotConfigured(ProviderError):
    """No upstream API key is configured."""

    def __init__(self):
        super().__init__("Places provider API key is not configured")


class LocalStoreError(DineCacheError):
    """Local entry is unreadable or corrupt."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"[{key}] {message}")
