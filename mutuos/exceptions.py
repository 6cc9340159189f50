"""Custom exception hierarchy for mutuos."""


class MutuosError(Exception):
    """Base exception for all mutuos errors."""


class InvalidParameterError(MutuosError):
    """Raised when schedule parameters or contract terms fail validation."""


class ArithmeticDomainError(MutuosError):
    """Raised when inputs are mathematically degenerate for amortization."""


class EntityNotFoundError(MutuosError):
    """Raised when a referenced entity does not exist."""


class LedgerError(MutuosError):
    """Base class for installment ledger consistency errors."""


class DuplicateInstallmentNumberError(LedgerError):
    """Raised when an installment number already exists for a contract."""


class AlreadySettledError(LedgerError):
    """Raised when settling an installment that is already settled."""


class InstallmentNotFoundError(LedgerError, EntityNotFoundError):
    """Raised when an installment is missing or not in the expected state."""


class ConcurrentModificationError(MutuosError):
    """Raised when the persistence layer reports lock contention.

    Unlike input errors, retrying the same call may succeed.
    """


class ConfigurationError(MutuosError):
    """Raised when configuration is invalid or missing."""


class SinkError(MutuosError):
    """Raised when a sink operation fails."""
