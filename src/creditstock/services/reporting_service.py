from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from creditstock.config import LedgerSettings
from creditstock.domain.errors import ValidationError
from creditstock.domain.models import InventoryLine, InventoryValuation, ReportDocument, SaleRecord, parse_serial
from creditstock.domain.money import parse_timestamp, sum_money

STOCK_COLUMNS = ("S.No", "Code", "Product Name", "Quantity", "Rate (Cost)", "Amount (Total)")
SALES_COLUMNS = ("Date", "S.No", "Product Name", "Qty Sold", "Rate (Cost)", "Cost Amount")


def next_serial_no(lines: Iterable[InventoryLine]) -> str:
    highest = 0
    for line in lines:
        highest = max(highest, parse_serial(getattr(line, "serial_no", None)))
    return str(highest + 1)


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD.") from e


def filter_sales_by_date_range(sales: Iterable[SaleRecord], start=None, end=None) -> list[SaleRecord]:
    """Whole local calendar days, inclusive at both ends. A missing bound disables filtering."""
    start_d, end_d = _as_date(start), _as_date(end)
    sales = list(sales)
    if start_d is None or end_d is None:
        return sales

    out = []
    for s in sales:
        ts = parse_timestamp(s.sale_date)
        if ts is None:
            continue
        if start_d <= ts.astimezone().date() <= end_d:
            out.append(s)
    return out


def _amount_sold(record) -> float:
    if isinstance(record, dict):
        value = record.get("amountSold")
    else:
        value = getattr(record, "amount_sold", None)
    return value or 0


def total_amount(records: Iterable) -> float:
    return sum_money(_amount_sold(r) for r in records)


def inventory_valuation(lines: Iterable[InventoryLine]) -> InventoryValuation:
    lines = list(lines)
    return InventoryValuation(
        unique_item_count=len(lines),
        total_cost=sum_money(line.amount for line in lines),
    )


def format_day(value) -> str:
    if isinstance(value, str):
        ts = parse_timestamp(value)
        if ts is None:
            return "N/A"
        value = ts.astimezone()
    if value is None:
        return "N/A"
    return value.strftime("%d %b %Y")


class ReportingService:
    def __init__(self, ledger, settings: LedgerSettings | None = None, clock: Callable[[], datetime] | None = None):
        self.ledger = ledger
        self.settings = settings or LedgerSettings()
        self.clock = clock

    def _today(self) -> date:
        moment = self.clock() if self.clock else datetime.now()
        return moment.date()

    def next_serial_no(self) -> str:
        return next_serial_no(self.ledger.list_inventory())

    def filter_sales_by_date_range(self, start=None, end=None) -> list[SaleRecord]:
        return filter_sales_by_date_range(self.ledger.list_sales(), start, end)

    def total_amount(self, records: Iterable) -> float:
        return total_amount(records)

    def inventory_valuation(self) -> InventoryValuation:
        return inventory_valuation(self.ledger.list_inventory())

    def remaining_stock_report(self) -> ReportDocument:
        lines = self.ledger.list_inventory()
        valuation = inventory_valuation(lines)
        rows = tuple(
            (line.serial_no, line.code, line.name, line.quantity, line.rate, line.amount)
            for line in lines
        )
        return ReportDocument(
            title="Remaining Stock List (Supplier Report)",
            subtitle=f"Date: {format_day(self._today())}",
            columns=STOCK_COLUMNS,
            rows=rows,
            count_label="Total Unique Items",
            total_label="Total Inventory Cost",
            record_count=valuation.unique_item_count,
            total=valuation.total_cost,
        )

    def sales_report(self, start=None, end=None) -> ReportDocument:
        start_d, end_d = _as_date(start), _as_date(end)
        records = self.filter_sales_by_date_range(start_d, end_d)
        rows = tuple(
            (format_day(s.sale_date), s.serial_no, s.name, s.quantity_sold, s.rate, s.amount_sold)
            for s in records
        )
        if start_d and end_d:
            subtitle = f"Date Range: {format_day(start_d)} to {format_day(end_d)}"
        else:
            subtitle = "Date Range: all sales"
        return ReportDocument(
            title="Sold Items List (Supplier Report)",
            subtitle=subtitle,
            columns=SALES_COLUMNS,
            rows=rows,
            count_label="Total Sales Items",
            total_label="Total Cost of Goods Sold",
            record_count=len(records),
            total=total_amount(records),
        )

    def render_text(self, report: ReportDocument) -> str:
        """Plain-text layout of a report, ready to hand to a printer."""

        def cell(v) -> str:
            if isinstance(v, float):
                return f"{v:.2f}"
            return str(v)

        numeric = [
            bool(report.rows) and all(isinstance(r[i], (int, float)) for r in report.rows)
            for i in range(len(report.columns))
        ]
        table = [list(report.columns)] + [[cell(v) for v in row] for row in report.rows]
        widths = [max(len(r[i]) for r in table) for i in range(len(report.columns))]

        out = [report.title, report.subtitle, ""]
        for r in table:
            out.append("  ".join(
                c.rjust(widths[i]) if numeric[i] else c.ljust(widths[i])
                for i, c in enumerate(r)
            ).rstrip())
        out.append("")
        out.append(
            f"{report.count_label}: {report.record_count}    "
            f"{report.total_label}: {self.settings.currency} {report.total:.2f}"
        )
        return "\n".join(out)

    def export_report_excel(self, report: ReportDocument, path: Path | str, sheet_title: str = "Report") -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_title[:31]

        ws["A1"] = report.title
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = report.subtitle

        header_row = 4
        for col, name in enumerate(report.columns, start=1):
            c = ws.cell(row=header_row, column=col, value=name)
            c.font = Font(bold=True)

        money_cols = (len(report.columns) - 1, len(report.columns))
        r = header_row
        for row in report.rows:
            r += 1
            for col, value in enumerate(row, start=1):
                c = ws.cell(row=r, column=col, value=value)
                if col in money_cols:
                    c.number_format = "#,##0.00"

        if report.rows:
            ref = f"A{header_row}:{get_column_letter(len(report.columns))}{r}"
            tab = Table(displayName="".join(ch for ch in sheet_title if ch.isalnum()) or "Report", ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        footer = r + 2
        ws.cell(row=footer, column=1, value=f"{report.count_label}: {report.record_count}").font = Font(bold=True)
        label = ws.cell(row=footer, column=len(report.columns) - 1, value=f"{report.total_label} ({self.settings.currency})")
        label.font = Font(bold=True)
        total = ws.cell(row=footer, column=len(report.columns), value=report.total)
        total.font = Font(bold=True)
        total.number_format = "#,##0.00"

        for col, width in zip("ABCDEF", (14, 14, 34, 12, 14, 18)):
            ws.column_dimensions[col].width = width
        ws.freeze_panes = f"A{header_row + 1}"

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        wb.save(target)
        return target
