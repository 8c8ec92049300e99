"""Error taxonomy shared by the record store, sync engine and HTTP surface."""


class ValidationFailure(ValueError):
    """Raised when record input is malformed; nothing is persisted."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class PersistenceFailure(RuntimeError):
    """Raised when the on-device key-value backend cannot be read or written."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class SyncFailure(RuntimeError):
    """Raised by remote store adapters on transport or payload errors."""

    def __init__(self, message: str, table: str | None = None) -> None:
        self.table = table
        super().__init__(message)


__all__ = ["ValidationFailure", "PersistenceFailure", "SyncFailure"]
