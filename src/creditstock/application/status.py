from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class StatusMessage:
    text: str
    kind: str
    expires_at: float


class StatusBar:
    """Latest user-facing message. It clears itself once its time-to-live runs out."""

    KINDS = ("info", "success", "error")

    def __init__(self, default_ttl: float = 3.0, now: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._now = now
        self._message: Optional[StatusMessage] = None

    def show(self, text: str, kind: str = "info", ttl: float | None = None) -> StatusMessage:
        if kind not in self.KINDS:
            raise ValueError(f"Unknown status kind: {kind}")
        ttl = self.default_ttl if ttl is None else ttl
        self._message = StatusMessage(text=text, kind=kind, expires_at=self._now() + ttl)
        return self._message

    def error(self, text: str, ttl: float | None = None) -> StatusMessage:
        return self.show(f"Error: {text}", kind="error", ttl=ttl)

    def current(self) -> Optional[StatusMessage]:
        if self._message is not None and self._now() >= self._message.expires_at:
            self._message = None
        return self._message

    def clear(self) -> None:
        self._message = None
