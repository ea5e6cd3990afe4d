class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class FormatError(AppError):
    """Backup payload is not a usable ledger snapshot."""


class StoreError(AppError):
    """Durable read/write failed. In-memory state stays authoritative."""
