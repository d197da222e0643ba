"""Cached access tokens and tickets with background refreshing."""

from __future__ import annotations

import contextlib
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

_REFRESH_TIME_WINDOW = 30 * 60.0
_MIN_REFRESH_DURATION = 5.0

_BACKOFF_INITIAL = 0.5
_BACKOFF_MULTIPLIER = 1.5
_BACKOFF_RANDOMIZATION = 0.5
_BACKOFF_MAX_INTERVAL = 60.0
_BACKOFF_MAX_ELAPSED = 15 * 60.0


@dataclass(frozen=True)
class TokenInfo:
    """A token value and how many seconds it stays valid."""

    token: str
    expires_in: float


class Token:
    """A token that is fetched lazily and can be kept fresh by a background thread."""

    def __init__(self, fetch: Callable[[], TokenInfo]) -> None:
        self._fetch = fetch
        self._lock = threading.Lock()
        self._token = ""
        self._expires_in = 0.0
        self._last_refresh: float | None = None

    def get(self) -> str:
        """Return the cached token, fetching it first if none is cached.

        A failed fetch leaves the cache empty and yields an empty string.
        """
        with self._lock:
            current = self._token
        if current:
            return current
        with contextlib.suppress(Exception):
            self.sync()
        with self._lock:
            return self._token

    def sync(self) -> None:
        """Fetch a fresh token and store it; errors from the fetch propagate."""
        info = self._fetch()
        with self._lock:
            self._token = info.token
            self._expires_in = float(info.expires_in)
            self._last_refresh = time.monotonic()

    def _sync_with_backoff(self, stop_event: threading.Event) -> bool:
        interval = _BACKOFF_INITIAL
        started = time.monotonic()
        while True:
            try:
                self.sync()
                return True
            except Exception:
                if time.monotonic() - started >= _BACKOFF_MAX_ELAPSED:
                    return False
                delta = _BACKOFF_RANDOMIZATION * interval
                delay = random.uniform(interval - delta, interval + delta)
                interval = min(interval * _BACKOFF_MULTIPLIER, _BACKOFF_MAX_INTERVAL)
                if stop_event.wait(delay):
                    return False

    def _next_wait(self) -> float:
        with self._lock:
            last_refresh = self._last_refresh
            expires_in = self._expires_in
        if last_refresh is None:
            return _MIN_REFRESH_DURATION
        due = last_refresh + expires_in - _REFRESH_TIME_WINDOW
        return max(due - time.monotonic(), _MIN_REFRESH_DURATION)

    def run_refresher(self, stop_event: threading.Event) -> None:
        """Refresh the token shortly before it expires until stop_event is set."""
        wait = 0.0
        while not stop_event.wait(wait):
            self._sync_with_backoff(stop_event)
            wait = self._next_wait()

    def spawn_refresher(self, stop_event: threading.Event) -> threading.Thread:
        """Start run_refresher in a daemon thread and return the thread."""
        thread = threading.Thread(
            target=self.run_refresher,
            args=(stop_event,),
            name="token-refresher",
            daemon=True,
        )
        thread.start()
        return thread