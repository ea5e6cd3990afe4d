import json
from datetime import datetime
from pathlib import Path

import pytest

from conftest import SteppingClock, build_ledger

from creditstock.config import LedgerSettings
from creditstock.domain.errors import FormatError
from creditstock.services.backup_service import BackupService


def _populated(tmp_path: Path):
    clock = SteppingClock(start=datetime(2026, 3, 10, 9, 0, 0).astimezone())
    ledger = build_ledger(tmp_path / "a", clock=clock)
    case = ledger.add_stock("C1", "Case", "Basic Case", 10, 5.0)
    cable = ledger.add_stock("CB", "Cable", "USB-C Cable", 4, 1.75)
    ledger.add_stock("H1", "", "Headset", 1, 12.0)
    ledger.record_sale(case.id, 4)
    ledger.record_sale(cable.id, 4)
    ledger.record_sale(case.id, 1)
    return ledger, BackupService(ledger, tmp_path / "backups", clock=clock)


def test_export_is_a_full_copy(tmp_path: Path):
    ledger, backup = _populated(tmp_path)

    snap = backup.export_snapshot()

    assert set(snap) == {"inventory", "sales", "version", "timestamp"}
    assert snap["version"] == 1.0
    assert len(snap["inventory"]) == 2
    assert len(snap["sales"]) == 3
    assert snap["inventory"][0]["amount"] == 25.0
    assert snap["sales"][0]["quantitySold"] == 1


def test_round_trip_reproduces_the_ledger(tmp_path: Path):
    ledger, backup = _populated(tmp_path)
    text = json.dumps(backup.export_snapshot())

    target = build_ledger(tmp_path / "b")
    target.add_stock("OLD", "", "To be replaced", 9, 9.0)
    counts = BackupService(target, tmp_path / "other").import_snapshot(text)

    assert counts == (2, 3)
    assert sorted(target.list_inventory(), key=lambda l: l.id) == sorted(ledger.list_inventory(), key=lambda l: l.id)
    assert target.list_sales() == ledger.list_sales()


def test_restore_sorts_sales_newest_first(tmp_path: Path):
    ledger, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    snap["sales"].reverse()

    target = build_ledger(tmp_path / "b")
    BackupService(target, tmp_path / "other").import_snapshot(snap)

    assert target.list_sales() == ledger.list_sales()


@pytest.mark.parametrize(
    "payload",
    [
        {"inventory": "not-an-array", "sales": []},
        {"inventory": [], "sales": {}},
        {"inventory": []},
        [],
        "{not json",
        b"\xff\xfe\x00",
    ],
)
def test_import_rejects_malformed_payload_without_changes(tmp_path: Path, payload):
    ledger, backup = _populated(tmp_path)
    before = (ledger.list_inventory(), ledger.list_sales())

    raw = json.dumps(payload) if isinstance(payload, (dict, list)) else payload
    with pytest.raises(FormatError):
        backup.import_snapshot(raw)

    assert (ledger.list_inventory(), ledger.list_sales()) == before


@pytest.mark.parametrize(
    "broken",
    [
        {"quantity": 0},
        {"quantity": "5"},
        {"name": ""},
        {"code": None},
        {"rate": -1},
        {"serialNo": "x"},
        {"dateAdded": "yesterday"},
        {"rate": float("inf")},
        {"quantity": 10 ** 40},
    ],
)
def test_import_rejects_invalid_inventory_records(tmp_path: Path, broken):
    ledger, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    snap["inventory"][1].update(broken)
    before = ledger.list_inventory()

    with pytest.raises(FormatError, match="inventory entry #2"):
        backup.import_snapshot(snap)

    assert ledger.list_inventory() == before


def test_import_rejects_duplicate_lines(tmp_path: Path):
    _, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    snap["inventory"].append(dict(snap["inventory"][0]))

    with pytest.raises(FormatError, match="duplicate id"):
        backup.import_snapshot(snap)


def test_import_rejects_invalid_sale_records(tmp_path: Path):
    _, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    snap["sales"][0]["quantitySold"] = -2

    with pytest.raises(FormatError, match="sales entry #1"):
        backup.import_snapshot(snap)


def test_import_assigns_ids_to_lines_saved_without_one(tmp_path: Path):
    _, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    for item in snap["inventory"]:
        item["id"] = ""

    target = build_ledger(tmp_path / "b")
    BackupService(target, tmp_path / "other").import_snapshot(snap)

    ids = [line.id for line in target.list_inventory()]
    assert len(ids) == 2
    assert all(ids) and len(set(ids)) == 2


def test_import_fills_missing_sale_amount(tmp_path: Path):
    _, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    del snap["sales"][0]["amountSold"]

    target = build_ledger(tmp_path / "b")
    BackupService(target, tmp_path / "other").import_snapshot(snap)

    assert target.list_sales()[0].amount_sold == 5.0


def test_write_and_restore_backup_file(tmp_path: Path):
    ledger, backup = _populated(tmp_path)

    path = backup.write_backup()
    assert path.name == "inventory_backup_2026-03-10.json"
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1.0

    expected = (ledger.list_inventory(), ledger.list_sales())
    ledger.delete_all_sales()
    ledger.delete_all_inventory()

    assert backup.restore_backup(path) == (2, 3)
    assert (ledger.list_inventory(), ledger.list_sales()) == expected


def test_restore_missing_file_is_a_format_error(tmp_path: Path):
    _, backup = _populated(tmp_path)

    with pytest.raises(FormatError, match="Error reading file"):
        backup.restore_backup(tmp_path / "nope.json")


def test_backup_retention_keeps_newest_files(tmp_path: Path):
    ledger, _ = _populated(tmp_path)
    backups = tmp_path / "backups"
    backups.mkdir()
    for day in range(1, 6):
        (backups / f"inventory_backup_2026-02-0{day}.json").write_text("{}", encoding="utf-8")

    clock = SteppingClock(start=datetime(2026, 3, 10, 9, 0, 0).astimezone())
    service = BackupService(ledger, backups, settings=LedgerSettings(max_backups=3), clock=clock)
    service.write_backup()

    names = sorted(p.name for p in backups.glob("*.json"))
    assert names == [
        "inventory_backup_2026-02-04.json",
        "inventory_backup_2026-02-05.json",
        "inventory_backup_2026-03-10.json",
    ]


def test_import_rejects_non_finite_rate_without_changes(tmp_path: Path):
    ledger, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    snap["inventory"][1]["rate"] = float("inf")
    text = json.dumps(snap)
    assert "Infinity" in text
    before = (ledger.list_inventory(), ledger.list_sales())

    with pytest.raises(FormatError, match="inventory entry #2"):
        backup.import_snapshot(text)

    assert (ledger.list_inventory(), ledger.list_sales()) == before
    assert len(build_ledger(tmp_path / "a").list_inventory()) == 2


@pytest.mark.parametrize("rate", [float("inf"), 1e30])
def test_import_rejects_sale_amount_that_cannot_be_rounded(tmp_path: Path, rate):
    ledger, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    del snap["sales"][0]["amountSold"]
    snap["sales"][0]["rate"] = rate
    before = (ledger.list_inventory(), ledger.list_sales())

    with pytest.raises(FormatError, match="sales entry #1"):
        backup.import_snapshot(json.dumps(snap))

    assert (ledger.list_inventory(), ledger.list_sales()) == before


def test_import_rejects_non_finite_stored_sale_amount(tmp_path: Path):
    _, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    snap["sales"][0]["amountSold"] = float("nan")

    with pytest.raises(FormatError, match="amountSold"):
        backup.import_snapshot(json.dumps(snap))


def test_import_rejects_serials_equal_as_numbers(tmp_path: Path):
    ledger, backup = _populated(tmp_path)
    snap = backup.export_snapshot()
    assert snap["inventory"][0]["serialNo"] == "1"
    snap["inventory"][1]["serialNo"] = "01"
    before = ledger.list_inventory()

    with pytest.raises(FormatError, match="duplicate serial 01"):
        backup.import_snapshot(snap)

    assert ledger.list_inventory() == before
