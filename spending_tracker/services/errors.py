class LedgerError(Exception):
    """Base class for errors raised by the ledger services."""


class ValidationError(LedgerError):
    """Raised when user input cannot be accepted (bad date, amount or alias)."""


class ConflictError(LedgerError):
    """Raised when a category alias is already taken within an account."""


class StoreError(LedgerError):
    """Raised when the database cannot be reached or a query fails."""
