# repository/rate_limit_repository.py
import asyncio
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict
from config.settings import settings


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float


class RateLimitRepository:
    """
    In-memory fixed-window counter keyed by client identity.

    A window opens on the first admitted request and lasts `window_seconds`;
    the first request after it expires opens a fresh one. Nothing survives
    a restart.
    """

    def __init__(
        self,
        times: int = settings.RATE_LIMIT_TIMES,
        window_seconds: float = settings.RATE_LIMIT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._times = int(times)
        self._window = float(window_seconds)
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = asyncio.Lock()

    @property
    def times(self) -> int:
        return self._times

    async def admit(self, client_id: str) -> bool:
        async with self._lock:
            now = self._clock()
            win = self._windows.get(client_id)
            if win is None or now > win.reset_at:
                self._windows[client_id] = RateLimitWindow(
                    count=1, reset_at=now + self._window
                )
                return True
            if win.count >= self._times:
                return False
            win.count += 1
            return True

    async def retry_after(self, client_id: str) -> int:
        """Seconds until the client's current window resets (0 if none)."""
        async with self._lock:
            win = self._windows.get(client_id)
            if win is None:
                return 0
            return max(0, math.ceil(win.reset_at - self._clock()))

    async def usage(self, client_id: str) -> int:
        async with self._lock:
            win = self._windows.get(client_id)
            if win is None or self._clock() > win.reset_at:
                return 0
            return win.count

    async def purge_expired(self) -> int:
        async with self._lock:
            now = self._clock()
            stale = [k for k, w in self._windows.items() if now > w.reset_at]
            for k in stale:
                del self._windows[k]
            return len(stale)
