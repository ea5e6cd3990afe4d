from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from creditstock.domain.errors import StoreError

log = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """One UTF-8 JSON file per key under a directory."""

    def __init__(self, store_dir: Path | str):
        self.store_dir = Path(store_dir)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StoreError(f"Invalid store key: {key!r}")
        return self.store_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            log.warning("store_read_failed key=%s error=%s", key, e)
            return default

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            payload = json.dumps(value, ensure_ascii=False, indent=2)
            self.store_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=str(self.store_dir))
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Could not save '{key}': {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
