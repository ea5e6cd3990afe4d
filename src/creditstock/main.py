from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from creditstock.application.container import AppContainer, build_container
from creditstock.application.status import StatusBar
from creditstock.config import get_app_paths, paths_for
from creditstock.domain.errors import AppError
from creditstock.logging_config import setup_logging

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="creditstock",
        description="Credit stock ledger: stock on hand, sales against it, supplier reports and backups.",
    )
    parser.add_argument("--home", help="Data directory (defaults to the per-user app directory)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add-stock", help="Add a new stock line")
    p.add_argument("--code", required=True)
    p.add_argument("--group", default="")
    p.add_argument("--name", required=True)
    p.add_argument("--quantity", required=True)
    p.add_argument("--rate", required=True)

    p = sub.add_parser("sell", help="Record a sale against a stock line")
    p.add_argument("line", help="Serial number (S.No) or line id")
    p.add_argument("quantity")

    sub.add_parser("stock", help="Print the remaining stock report")

    p = sub.add_parser("sales", help="Print the sales report")
    p.add_argument("--start", help="YYYY-MM-DD")
    p.add_argument("--end", help="YYYY-MM-DD")

    p = sub.add_parser("export", help="Write a JSON backup")
    p.add_argument("--dir", help="Target directory (defaults to the backups folder)")

    p = sub.add_parser("restore", help="Replace all data with a JSON backup")
    p.add_argument("file")

    for name, what in (("delete-sales", "the whole sales history"), ("delete-stock", "all remaining stock")):
        p = sub.add_parser(name, help=f"Delete {what}")
        p.add_argument("--yes", action="store_true", help="Confirm the permanent deletion")

    p = sub.add_parser("report", help="Export a report to Excel")
    p.add_argument("kind", choices=("stock", "sales"))
    p.add_argument("--xlsx", required=True)
    p.add_argument("--start", help="YYYY-MM-DD")
    p.add_argument("--end", help="YYYY-MM-DD")
    return parser


def _run(args, app: AppContainer, status: StatusBar) -> None:
    ledger, reporting, backup = app.ledger, app.reporting, app.backup

    if args.command == "add-stock":
        line = ledger.add_stock(args.code, args.group, args.name, args.quantity, args.rate)
        status.show(f"Stock added successfully! Serial No: {line.serial_no}", kind="success")

    elif args.command == "sell":
        line = ledger.find_by_serial(args.line) or ledger.get_line(args.line)
        if line is None:
            raise AppError(f"No stock line with S.No or id '{args.line}'.")
        sale = ledger.record_sale(line.id, args.quantity)
        remaining = line.quantity - sale.quantity_sold
        status.show(
            f"{sale.quantity_sold}x {sale.name} sold and recorded! Remaining stock: {remaining}.",
            kind="success",
        )

    elif args.command == "stock":
        print(reporting.render_text(reporting.remaining_stock_report()))

    elif args.command == "sales":
        print(reporting.render_text(reporting.sales_report(args.start, args.end)))

    elif args.command == "export":
        path = backup.write_backup(args.dir)
        status.show(f"Backup file '{path.name}' saved successfully!", kind="success")

    elif args.command == "restore":
        lines, sales = backup.restore_backup(args.file)
        status.show(
            f"Data successfully restored from '{Path(args.file).name}'! ({lines} lines, {sales} sales)",
            kind="success",
            ttl=app.settings.restore_status_ttl_seconds,
        )

    elif args.command in ("delete-sales", "delete-stock"):
        if not args.yes:
            status.show("Nothing deleted. Re-run with --yes to delete permanently.")
        elif args.command == "delete-sales":
            removed = ledger.delete_all_sales()
            status.show(f"Successfully deleted all {removed} Sales History records.", kind="success")
        else:
            removed = ledger.delete_all_inventory()
            status.show(f"Successfully deleted all {removed} Remaining Stock records.", kind="success")

    elif args.command == "report":
        if args.kind == "stock":
            doc, sheet = reporting.remaining_stock_report(), "Remaining Stock"
        else:
            doc, sheet = reporting.sales_report(args.start, args.end), "Sales"
        path = reporting.export_report_excel(doc, args.xlsx, sheet_title=sheet)
        status.show(f"Report saved to {path}", kind="success")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    base_dir = args.home or get_app_paths().base_dir
    setup_logging(paths_for(base_dir).logs_dir, level=logging.INFO)
    app = build_container(base_dir)

    status = StatusBar(default_ttl=app.settings.status_ttl_seconds)
    code = 0
    try:
        _run(args, app, status)
    except AppError as e:
        log.warning("command_failed command=%s error=%s", args.command, e)
        status.error(str(e), ttl=app.settings.restore_status_ttl_seconds if args.command == "restore" else None)
        code = 1

    msg = status.current()
    if msg is not None:
        print(msg.text, file=sys.stderr if msg.kind == "error" else sys.stdout)
    for warning in app.ledger.drain_warnings():
        print(f"Warning: {warning}", file=sys.stderr)
    return code


if __name__ == "__main__":
    sys.exit(main())
