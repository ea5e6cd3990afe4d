from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from creditstock.config import AppPaths, LedgerSettings, paths_for
from creditstock.repositories.json_store import JsonFileStore
from creditstock.repositories.ledger_repo import LedgerRepository
from creditstock.services.backup_service import BackupService
from creditstock.services.ledger_service import LedgerService
from creditstock.services.reporting_service import ReportingService


@dataclass(frozen=True)
class AppContainer:
    paths: AppPaths
    settings: LedgerSettings
    store: JsonFileStore
    repo: LedgerRepository
    ledger: LedgerService
    reporting: ReportingService
    backup: BackupService


def build_container(
    base_dir: Path | str,
    settings: LedgerSettings | None = None,
    clock: Callable[[], datetime] | None = None,
) -> AppContainer:
    paths = paths_for(base_dir)
    settings = settings or LedgerSettings()

    store = JsonFileStore(paths.store_dir)
    repo = LedgerRepository(store)
    ledger = LedgerService(repo, clock=clock)
    reporting = ReportingService(ledger, settings=settings, clock=clock)
    backup = BackupService(ledger, paths.backups_dir, settings=settings, clock=clock)

    return AppContainer(
        paths=paths,
        settings=settings,
        store=store,
        repo=repo,
        ledger=ledger,
        reporting=reporting,
        backup=backup,
    )
