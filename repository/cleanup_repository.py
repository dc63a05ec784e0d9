# repository/cleanup_repository.py
import asyncio
import logging
import os
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


def remove_quietly(path: str) -> bool:
    """Delete `path`; a file that is already gone is not an error."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False


class CleanupRepository:
    """
    Deferred artifact deletion, one pending timer per job id.
    Timers are asyncio tasks; they only exist while the event loop runs.
    """

    def __init__(self) -> None:
        self._timers: Dict[str, Tuple[asyncio.Task, str]] = {}

    def schedule(self, job_id: str, path: str, delay: float) -> None:
        self.cancel(job_id)
        task = asyncio.create_task(
            self._fire(job_id, path, delay), name=f"cleanup:{job_id}"
        )
        self._timers[job_id] = (task, path)
        logger.info("cleanup.scheduled job=%s delay=%.0fs", job_id, delay)

    def cancel(self, job_id: str) -> Optional[str]:
        """Cancel a pending timer; returns the path it would have deleted."""
        entry = self._timers.pop(job_id, None)
        if entry is None:
            return None
        task, path = entry
        task.cancel()
        return path

    def pending(self, job_id: str) -> bool:
        return job_id in self._timers

    def shutdown(self) -> List[str]:
        """Cancel every pending timer; returns the paths they owned."""
        paths = [self.cancel(job_id) for job_id in list(self._timers)]
        return [p for p in paths if p]

    async def _fire(self, job_id: str, path: str, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            removed = remove_quietly(path)
            logger.info("cleanup.fired job=%s removed=%s", job_id, removed)
        except OSError:
            logger.exception("cleanup.error job=%s path=%s", job_id, path)
        finally:
            entry = self._timers.get(job_id)
            if entry is not None and entry[0] is asyncio.current_task():
                del self._timers[job_id]
