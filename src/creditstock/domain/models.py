from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable, Optional

from creditstock.domain.money import line_amount, parse_timestamp

_LEADING_INT = re.compile(r"^\s*\+?(\d+)")


def parse_serial(value: object) -> int:
    """Leading-integer parse of a serial number; anything unusable is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, float):
        return int(value) if value >= 1 else 0
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        if m:
            return int(m.group(1))
    return 0


def _text(data: dict, key: str, required: bool = True) -> str:
    value = data.get(key)
    if value is None:
        value = ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be text")
    value = value.strip()
    if required and not value:
        raise ValueError(f"'{key}' is required")
    return value


def _count(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"'{key}' must be a whole number")
        value = int(value)
    if value < 1:
        raise ValueError(f"'{key}' must be >= 1")
    return value


def _rate(data: dict, key: str = "rate") -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number")
    if not math.isfinite(value):
        raise ValueError(f"'{key}' must be a finite number")
    if value < 0:
        raise ValueError(f"'{key}' must be >= 0")
    return float(value)


def _timestamp(data: dict, key: str) -> str:
    value = data.get(key)
    if parse_timestamp(value) is None:
        raise ValueError(f"'{key}' must be an ISO-8601 timestamp")
    return value.strip()


@dataclass(frozen=True)
class InventoryLine:
    id: str
    serial_no: str
    code: str
    group: str
    name: str
    quantity: int
    rate: float
    date_added: str

    @property
    def amount(self) -> float:
        return line_amount(self.quantity, self.rate)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "serialNo": self.serial_no,
            "code": self.code,
            "group": self.group,
            "name": self.name,
            "quantity": self.quantity,
            "rate": self.rate,
            "amount": self.amount,
            "dateAdded": self.date_added,
        }

    @classmethod
    def from_dict(cls, data: dict, new_id: Optional[Callable[[], str]] = None) -> "InventoryLine":
        """
        Build a line from its stored form. A stored amount is ignored and
        recomputed. Lines saved without an id get one from new_id when given.
        """
        if not isinstance(data, dict):
            raise ValueError("inventory line must be an object")
        line_id = _text(data, "id", required=new_id is None) or new_id()
        serial = _text(data, "serialNo")
        if parse_serial(serial) < 1:
            raise ValueError("'serialNo' must be a positive integer")
        qty = _count(data, "quantity")
        rate = _rate(data)
        line_amount(qty, rate)
        return cls(
            id=line_id,
            serial_no=serial,
            code=_text(data, "code"),
            group=_text(data, "group", required=False),
            name=_text(data, "name"),
            quantity=qty,
            rate=rate,
            date_added=_timestamp(data, "dateAdded"),
        )


@dataclass(frozen=True)
class SaleRecord:
    id: str
    inventory_id: str
    serial_no: str
    code: str
    group: str
    name: str
    rate: float
    quantity_sold: int
    amount_sold: float
    sale_date: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventoryId": self.inventory_id,
            "serialNo": self.serial_no,
            "code": self.code,
            "group": self.group,
            "name": self.name,
            "rate": self.rate,
            "quantitySold": self.quantity_sold,
            "amountSold": self.amount_sold,
            "saleDate": self.sale_date,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SaleRecord":
        if not isinstance(data, dict):
            raise ValueError("sale record must be an object")
        rate = _rate(data)
        qty = _count(data, "quantitySold")
        computed = line_amount(qty, rate)
        stored = data.get("amountSold")
        if stored is None:
            amount = computed
        elif isinstance(stored, bool) or not isinstance(stored, (int, float)) or not math.isfinite(stored):
            raise ValueError("'amountSold' must be a finite number")
        else:
            amount = float(stored)
        return cls(
            id=_text(data, "id"),
            inventory_id=_text(data, "inventoryId", required=False),
            serial_no=_text(data, "serialNo", required=False),
            code=_text(data, "code"),
            group=_text(data, "group", required=False),
            name=_text(data, "name"),
            rate=rate,
            quantity_sold=qty,
            amount_sold=amount,
            sale_date=_timestamp(data, "saleDate"),
        )


@dataclass(frozen=True)
class InventoryValuation:
    unique_item_count: int
    total_cost: float

    def to_dict(self) -> dict:
        return {"uniqueItemCount": self.unique_item_count, "totalCost": self.total_cost}


@dataclass(frozen=True)
class ReportDocument:
    title: str
    subtitle: str
    columns: tuple[str, ...]
    rows: tuple[tuple, ...]
    count_label: str
    total_label: str
    record_count: int
    total: float
