from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable

from creditstock.config import LedgerSettings
from creditstock.domain.errors import FormatError
from creditstock.domain.models import InventoryLine, SaleRecord, parse_serial
from creditstock.domain.money import now_iso, sort_key

log = logging.getLogger("creditstock.backup")

BACKUP_PREFIX = "inventory_backup_"


def backup_filename(day: date) -> str:
    return f"{BACKUP_PREFIX}{day.isoformat()}.json"


class BackupService:
    """
    Snapshot export/restore of the whole ledger.

    Format:
      {"inventory": [...], "sales": [...], "version": 1.0, "timestamp": "<ISO-8601>"}

    Restore replaces the current ledger; nothing is merged. A payload is only
    applied once it has been fully read and every record has been checked.
    """

    def __init__(
        self,
        ledger,
        backup_dir: Path | str,
        settings: LedgerSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ledger = ledger
        self.backup_dir = Path(backup_dir)
        self.settings = settings or LedgerSettings()
        self.clock = clock

    def export_snapshot(self) -> dict:
        return {
            "inventory": [line.to_dict() for line in self.ledger.list_inventory()],
            "sales": [rec.to_dict() for rec in self.ledger.list_sales()],
            "version": self.settings.backup_version,
            "timestamp": now_iso(self.clock),
        }

    def snapshot_filename(self) -> str:
        moment = self.clock() if self.clock else datetime.now()
        return backup_filename(moment.date())

    def parse_snapshot(self, raw) -> tuple[list[InventoryLine], list[SaleRecord]]:
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise FormatError("Invalid backup file format. File is not UTF-8 text.") from e
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise FormatError(f"Invalid backup file format. {e.msg} at line {e.lineno}.") from e
        if not isinstance(raw, dict):
            raise FormatError("Invalid backup file format. Expected a JSON object.")
        if not isinstance(raw.get("inventory"), list) or not isinstance(raw.get("sales"), list):
            raise FormatError("Invalid backup file format. Missing 'inventory' or 'sales' arrays.")

        lines: list[InventoryLine] = []
        seen_ids: set[str] = set()
        seen_serials: set[int] = set()
        for idx, item in enumerate(raw["inventory"]):
            try:
                line = InventoryLine.from_dict(item, new_id=self.ledger.new_id)
            except (ValueError, TypeError) as e:
                raise FormatError(f"Invalid inventory entry #{idx + 1}: {e}") from e
            if line.id in seen_ids:
                raise FormatError(f"Invalid inventory entry #{idx + 1}: duplicate id {line.id}")
            serial = parse_serial(line.serial_no)
            if serial in seen_serials:
                raise FormatError(f"Invalid inventory entry #{idx + 1}: duplicate serial {line.serial_no}")
            seen_ids.add(line.id)
            seen_serials.add(serial)
            lines.append(line)

        sales: list[SaleRecord] = []
        for idx, item in enumerate(raw["sales"]):
            try:
                sales.append(SaleRecord.from_dict(item))
            except (ValueError, TypeError) as e:
                raise FormatError(f"Invalid sales entry #{idx + 1}: {e}") from e

        sales.sort(key=lambda s: sort_key(s.sale_date), reverse=True)
        return lines, sales

    def import_snapshot(self, raw) -> tuple[int, int]:
        lines, sales = self.parse_snapshot(raw)
        self.ledger.load_snapshot(lines, sales)
        return len(lines), len(sales)

    def write_backup(self, target_dir: Path | str | None = None) -> Path:
        out_dir = Path(target_dir) if target_dir else self.backup_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / self.snapshot_filename()

        payload = json.dumps(self.export_snapshot(), ensure_ascii=False, indent=2)
        target.write_text(payload, encoding="utf-8")
        if out_dir == self.backup_dir:
            self._enforce_retention(self.settings.max_backups)
        log.info("backup_written path=%s", target)
        return target

    def restore_backup(self, backup_file: Path | str) -> tuple[int, int]:
        path = Path(backup_file)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise FormatError(f"Error reading file: {e}") from e
        counts = self.import_snapshot(content)
        log.warning("backup_restored file=%s lines=%s sales=%s", path.name, *counts)
        return counts

    def _enforce_retention(self, max_backups: int) -> None:
        files = sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}*.json"))
        if len(files) <= max_backups:
            return
        for old in files[: len(files) - max_backups]:
            old.unlink(missing_ok=True)
