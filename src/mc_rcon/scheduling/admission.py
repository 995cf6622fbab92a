"""Per-caller cooldown gate for rate-limited requests."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from mc_rcon.models import Accepted, Admission, RejectedFor


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CooldownGate:
    """In-memory admission table keyed by caller identity.

    Stale entries are only collected once the table grows past
    ``gc_threshold``; lookups never allocate.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        gc_threshold: int = 1_000,
        gc_horizon: timedelta = timedelta(hours=1),
    ) -> None:
        self._clock = clock or utc_now
        self._gc_threshold = gc_threshold
        self._gc_horizon = gc_horizon
        self._last_request: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_request)

    def try_admit(self, key: str, window: timedelta) -> Admission:
        """Admit ``key`` and stamp it, or report how long it must still wait."""
        with self._lock:
            now = self._clock()
            remaining = self._remaining_locked(key, window, now)
            if remaining is not None:
                return RejectedFor(remaining=remaining)

            self._last_request[key] = now
            if len(self._last_request) > self._gc_threshold:
                self._collect_locked(now)
            return Accepted()

    def remaining(self, key: str, window: timedelta) -> timedelta | None:
        with self._lock:
            return self._remaining_locked(key, window, self._clock())

    def reset(self, key: str) -> None:
        with self._lock:
            self._last_request.pop(key, None)

    def _remaining_locked(self, key: str, window: timedelta, now: datetime) -> timedelta | None:
        last = self._last_request.get(key)
        if last is None:
            return None
        elapsed = now - last
        if elapsed >= window:
            return None
        return window - elapsed

    def _collect_locked(self, now: datetime) -> None:
        cutoff = now - self._gc_horizon
        stale = [key for key, last in self._last_request.items() if last < cutoff]
        for key in stale:
            del self._last_request[key]
