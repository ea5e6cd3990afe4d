from __future__ import annotations

import logging
import math
import re
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Optional

from creditstock.domain.errors import StoreError, ValidationError
from creditstock.domain.models import InventoryLine, SaleRecord
from creditstock.domain.money import line_amount, now_iso, sort_key
from creditstock.repositories.ledger_repo import LedgerRepository
from creditstock.services.reporting_service import next_serial_no

log = logging.getLogger("creditstock.ledger")

_DIGITS = re.compile(r"\+?[0-9]+")


def _new_id() -> str:
    return uuid.uuid4().hex


def _whole_number(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        return int(value.strip())
    return None


def _positive_rate(value: object) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate) or rate <= 0:
        return None
    return rate


class LedgerService:
    """
    Owns the inventory lines and the sales history.

    Every successful mutation is written through to the repository right away.
    A failed write is logged and kept as a warning (see drain_warnings); the
    in-memory change stands.
    """

    def __init__(
        self,
        repo: LedgerRepository,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.repo = repo
        self.clock = clock
        self.new_id = id_factory or _new_id
        self._inventory: dict[str, InventoryLine] = {}
        self._sales: list[SaleRecord] = []
        self._warnings: list[str] = []
        self.reload()

    # ---- reads ----

    def reload(self) -> None:
        self._inventory = {}
        for line in self.repo.load_inventory():
            if line.id in self._inventory:
                log.warning("duplicate_line_dropped id=%s serial=%s", line.id, line.serial_no)
                continue
            self._inventory[line.id] = line
        self._sales = self.repo.load_sales()
        self._sort_sales()
        log.info("ledger_loaded lines=%s sales=%s", len(self._inventory), len(self._sales))

    def list_inventory(self) -> list[InventoryLine]:
        return list(self._inventory.values())

    def list_sales(self) -> list[SaleRecord]:
        return list(self._sales)

    def get_line(self, line_id: str) -> Optional[InventoryLine]:
        return self._inventory.get(str(line_id))

    def find_by_serial(self, serial_no: str) -> Optional[InventoryLine]:
        serial_no = str(serial_no).strip()
        for line in self._inventory.values():
            if line.serial_no == serial_no:
                return line
        return None

    def drain_warnings(self) -> list[str]:
        out, self._warnings = self._warnings, []
        return out

    # ---- mutations ----

    def add_stock(self, code: str, group: str, name: str, quantity, rate) -> InventoryLine:
        code = (code or "").strip()
        group = (group or "").strip()
        name = (name or "").strip()
        qty = _whole_number(quantity)
        unit_rate = _positive_rate(rate)
        if not code or not name or qty is None or qty <= 0 or unit_rate is None:
            raise ValidationError("Please fill all required fields and ensure Quantity/Rate are positive.")
        try:
            line_amount(qty, unit_rate)
        except ValueError:
            raise ValidationError("Quantity x Rate is too large to record.") from None

        line = InventoryLine(
            id=self.new_id(),
            serial_no=next_serial_no(self._inventory.values()),
            code=code,
            group=group,
            name=name,
            quantity=qty,
            rate=unit_rate,
            date_added=now_iso(self.clock),
        )
        self._inventory[line.id] = line
        log.info("stock_added id=%s serial=%s code=%s qty=%s rate=%.2f", line.id, line.serial_no, code, qty, unit_rate)
        self._persist(inventory=True)
        return line

    def record_sale(self, line_id: str, quantity) -> SaleRecord:
        line = self._inventory.get(str(line_id))
        if line is None:
            raise ValidationError("Inventory line not found.")
        qty = _whole_number(quantity)
        if qty is None or qty <= 0 or qty > line.quantity:
            raise ValidationError("Sale quantity is invalid or exceeds stock.")
        amount = line_amount(qty, line.rate)

        remaining = line.quantity - qty
        if remaining > 0:
            self._inventory[line.id] = replace(line, quantity=remaining)
        else:
            del self._inventory[line.id]

        sale = SaleRecord(
            id=self.new_id(),
            inventory_id=line.id,
            serial_no=line.serial_no,
            code=line.code,
            group=line.group,
            name=line.name,
            rate=line.rate,
            quantity_sold=qty,
            amount_sold=amount,
            sale_date=now_iso(self.clock),
        )
        self._sales.insert(0, sale)
        self._sort_sales()
        log.info(
            "sale_recorded sale_id=%s line_id=%s serial=%s qty=%s amount=%.2f remaining=%s",
            sale.id, line.id, line.serial_no, qty, sale.amount_sold, remaining,
        )
        self._persist(inventory=True, sales=True)
        return sale

    def delete_all_sales(self) -> int:
        removed = len(self._sales)
        self._sales = []
        log.warning("sales_cleared removed=%s", removed)
        self._persist(sales=True)
        return removed

    def delete_all_inventory(self) -> int:
        removed = len(self._inventory)
        self._inventory = {}
        log.warning("inventory_cleared removed=%s", removed)
        self._persist(inventory=True)
        return removed

    def load_snapshot(self, inventory: Iterable[InventoryLine], sales: Iterable[SaleRecord]) -> None:
        """Replace both collections wholesale. Prior state is discarded, not merged."""
        lines = list(inventory)
        records = list(sales)

        by_id: dict[str, InventoryLine] = {}
        for line in lines:
            if not isinstance(line, InventoryLine):
                raise ValidationError("Snapshot inventory holds a non-line entry.")
            if line.quantity <= 0:
                raise ValidationError(f"Line {line.serial_no} has no stock left.")
            if line.id in by_id:
                raise ValidationError(f"Duplicate inventory id: {line.id}")
            by_id[line.id] = line
        if any(not isinstance(rec, SaleRecord) for rec in records):
            raise ValidationError("Snapshot sales holds a non-sale entry.")

        self._inventory = by_id
        self._sales = records
        self._sort_sales()
        log.warning("snapshot_loaded lines=%s sales=%s", len(by_id), len(records))
        self._persist(inventory=True, sales=True)

    # ---- internals ----

    def _sort_sales(self) -> None:
        # list.sort is stable with reverse=True, so same-instant sales keep newest insert first.
        self._sales.sort(key=lambda s: sort_key(s.sale_date), reverse=True)

    def _persist(self, inventory: bool = False, sales: bool = False) -> None:
        if inventory:
            try:
                self.repo.save_inventory(self._inventory.values())
            except StoreError as e:
                log.error("store_write_failed collection=inventory error=%s", e)
                self._warnings.append(f"Inventory was not saved: {e}")
        if sales:
            try:
                self.repo.save_sales(self._sales)
            except StoreError as e:
                log.error("store_write_failed collection=sales error=%s", e)
                self._warnings.append(f"Sales history was not saved: {e}")
