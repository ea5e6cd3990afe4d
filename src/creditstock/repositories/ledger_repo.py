from __future__ import annotations

import logging
from typing import Iterable

from creditstock.domain.models import InventoryLine, SaleRecord
from creditstock.repositories.contracts import KeyValueStore

log = logging.getLogger(__name__)

INVENTORY_KEY = "creditInventory"
SALES_KEY = "salesHistory"


class LedgerRepository:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load_list(self, key: str) -> list:
        data = self.store.get(key, [])
        if not isinstance(data, list):
            log.warning("store_value_not_a_list key=%s type=%s", key, type(data).__name__)
            return []
        return data

    def load_inventory(self) -> list[InventoryLine]:
        lines: list[InventoryLine] = []
        for idx, raw in enumerate(self._load_list(INVENTORY_KEY)):
            try:
                lines.append(InventoryLine.from_dict(raw))
            except (ValueError, TypeError) as e:
                log.warning("inventory_line_skipped index=%s error=%s", idx, e)
        return lines

    def load_sales(self) -> list[SaleRecord]:
        records: list[SaleRecord] = []
        for idx, raw in enumerate(self._load_list(SALES_KEY)):
            try:
                records.append(SaleRecord.from_dict(raw))
            except (ValueError, TypeError) as e:
                log.warning("sale_record_skipped index=%s error=%s", idx, e)
        return records

    def save_inventory(self, lines: Iterable[InventoryLine]) -> None:
        self.store.set(INVENTORY_KEY, [line.to_dict() for line in lines])

    def save_sales(self, records: Iterable[SaleRecord]) -> None:
        self.store.set(SALES_KEY, [rec.to_dict() for rec in records])
