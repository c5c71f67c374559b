from __future__ import annotations


class SwapSyncError(Exception):
    """Base exception for every fatal swapsync failure."""


class ConfigError(SwapSyncError):
    """Missing or invalid settings, or a venue that does not list the pair."""


class InvalidLookbackError(SwapSyncError, ValueError):
    """Lookback window is not a positive whole number of hours."""


class LedgerError(SwapSyncError):
    """JSON-RPC transport or protocol failure."""

    def __init__(self, method: str, message: str) -> None:
        self.method = method
        self.message = message
        super().__init__(f"{method}: {message}")


class SwapDecodeError(SwapSyncError):
    """Swap log payload could not be turned into a trade."""
