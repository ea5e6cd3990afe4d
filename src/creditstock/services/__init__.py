from .ledger_service import LedgerService
from .reporting_service import ReportingService
from .backup_service import BackupService

__all__ = [
    "LedgerService",
    "ReportingService",
    "BackupService",
]
