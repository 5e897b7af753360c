from __future__ import annotations

import re
import threading
import time

from hrms.utils.errors import ApiError

_LIMIT_RE = re.compile(r"^\s*(\d+)\s+per\s+(?:(\d+)\s+)?minutes?\s*$", re.IGNORECASE)


def parse_limit(limit: str) -> tuple[int, int]:
    """``"300 per minute"`` -> (300, 60); ``"5 per 15 minutes"`` -> (5, 900)."""
    m = _LIMIT_RE.match(str(limit or ""))
    if not m:
        return 300, 60
    count = max(1, int(m.group(1)))
    minutes = max(1, int(m.group(2) or 1))
    return count, minutes * 60


class InMemoryRateLimiter:
    def __init__(self, *, max_keys: int = 50_000):
        self._max_keys = max_keys
        self._lock = threading.Lock()
        self._store: dict[str, tuple[int, int]] = {}

    def check(self, key: str, limit: str, *, now: float | None = None) -> None:
        max_hits, window_seconds = parse_limit(limit)
        window_id = int((time.time() if now is None else now) // window_seconds)

        with self._lock:
            if len(self._store) > self._max_keys:
                self._store.clear()

            current_window, current_count = self._store.get(key, (window_id, 0))
            if current_window != window_id:
                current_window, current_count = window_id, 0
            current_count += 1
            self._store[key] = (current_window, current_count)

            if current_count > max_hits:
                raise ApiError("RATE_LIMITED", "Too many requests, please try again later", status=429)
