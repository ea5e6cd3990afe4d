from .models import InventoryLine, SaleRecord, InventoryValuation, ReportDocument
from .errors import AppError, ValidationError, FormatError, StoreError

__all__ = [
    "InventoryLine",
    "SaleRecord",
    "InventoryValuation",
    "ReportDocument",
    "AppError",
    "ValidationError",
    "FormatError",
    "StoreError",
]
