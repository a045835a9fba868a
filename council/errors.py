"""Exception hierarchy for the council package."""


class CouncilError(Exception):
    """Base class for all council errors."""


class ConfigError(CouncilError):
    """Raised when a configuration value cannot be parsed or is out of range."""


class PersistenceError(CouncilError):
    """Raised when the paper ledger could not be written to disk."""


class LedgerCorruptError(PersistenceError):
    """Persisted ledger exists but cannot be decoded."""
