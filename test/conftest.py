import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


class SteppingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc).astimezone()
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + self.step
        return value


def build_ledger(tmp_path: Path, clock=None):
    from creditstock.repositories.json_store import JsonFileStore
    from creditstock.repositories.ledger_repo import LedgerRepository
    from creditstock.services.ledger_service import LedgerService

    repo = LedgerRepository(JsonFileStore(tmp_path / "store"))
    return LedgerService(repo, clock=clock or SteppingClock())
