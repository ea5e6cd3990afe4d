from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    store_dir: Path
    backups_dir: Path
    logs_dir: Path


@dataclass(frozen=True)
class LedgerSettings:
    currency: str = "PKR"
    status_ttl_seconds: float = 3.0
    restore_status_ttl_seconds: float = 5.0
    max_backups: int = 30
    backup_version: float = 1.0


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "CreditStockManager") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    return paths_for(base)


def paths_for(base: Path | str) -> AppPaths:
    base = Path(base)
    store = base / "store"
    backups = base / "backups"
    logs = base / "logs"

    for d in (base, store, backups, logs):
        d.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, store_dir=store, backups_dir=backups, logs_dir=logs)
