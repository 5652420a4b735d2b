"""Custom exceptions for the daily health log."""


class DailyHealthLogError(Exception):
    """Base exception for all daily health log errors."""

    pass


class ConfigurationError(DailyHealthLogError):
    """Raised when there is a configuration error."""

    pass


class StorageError(DailyHealthLogError):
    """Raised when the record store cannot fetch or persist data."""

    pass


class ProviderError(DailyHealthLogError):
    """Raised when an external health data query fails or is not authorized."""

    pass


class ParsingError(DailyHealthLogError):
    """Raised when sample file parsing fails."""

    pass


class BackupError(DailyHealthLogError):
    """Raised when a database export or import fails."""

    pass
