class LedgerError(Exception):
    """Base exception for ledger operations."""

    pass


class ValidationError(LedgerError):
    """Exception raised for bad or missing input (empty name, bad scores...)."""

    pass


class NotFoundError(LedgerError):
    """Exception raised when a team or match id does not exist."""

    pass


class PersistenceError(LedgerError):
    """Exception raised when the storage collaborator fails to load or save."""

    pass
