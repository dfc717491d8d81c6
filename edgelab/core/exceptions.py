"""Custom exceptions for Edgelab."""


class EdgeLabError(Exception):
    """Base exception for Edgelab.

    All custom exceptions in the package should inherit from this class
    to enable consistent exception handling.
    """


class ConfigurationError(EdgeLabError, ValueError):
    """Raised when a simulation or analytics configuration is invalid.

    This exception is raised before any computation starts, e.g. for a
    non-positive starting capital, a win rate outside [0, 100] or a
    non-positive trade/trial count.
    """


class FileLoadError(EdgeLabError):
    """Raised when file loading fails.

    This exception is raised when a file cannot be read or has an
    extension the requested report format does not support.
    """


class TradeLogError(EdgeLabError):
    """Raised when a trade log cannot be parsed.

    This exception is raised when no profit/loss column can be located
    or no trade rows could be extracted from the report.
    """
