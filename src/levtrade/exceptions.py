"""Custom exceptions for levtrade.

Insufficient data, invalid user input and unresolvable outcomes are NOT
exceptions: they are ordinary result values. Exceptions are reserved for
boundary failures (configuration, upstream fetches, malformed payloads).
"""


class LevtradeError(Exception):
    """Base exception for all levtrade errors."""


class ConfigurationError(LevtradeError):
    """Raised when required configuration (secrets, paths) is missing."""


class UpstreamDataError(LevtradeError):
    """Raised when fetching market data from the upstream exchange fails.

    Recoverable: the caller degrades the affected coin and retries on the
    next tick.
    """


class StateDecodeError(LevtradeError):
    """Raised when a persisted or pushed state payload cannot be decoded."""
