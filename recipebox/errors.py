class StorageError(Exception):
    """Raised when the key-value backend cannot read or write a value."""


class LoadFailure(StorageError):
    """The persisted recipe list could not be read or parsed."""


class PersistFailure(StorageError):
    """The recipe list could not be written to the key-value backend."""


__all__ = ["LoadFailure", "PersistFailure", "StorageError"]
