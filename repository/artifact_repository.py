# repository/artifact_repository.py
import logging
import os
import time
from typing import List, Optional
from config.settings import settings
from repository.cleanup_repository import remove_quietly
from util import functions

logger = logging.getLogger(__name__)


class ArtifactRepository:
    """
    The on-disk download directory. Files belong to a job through the
    `<jobId>.` name prefix; nothing else is tracked here.
    """

    def __init__(self, base_dir: str = settings.DOWNLOAD_DIR) -> None:
        self._base_dir = base_dir
        os.makedirs(self._base_dir, exist_ok=True)

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def _entries(self, job_id: str) -> List[str]:
        prefix = functions.job_prefix(job_id)
        try:
            names = os.listdir(self._base_dir)
        except FileNotFoundError:
            return []
        return sorted(n for n in names if n.startswith(prefix))

    def find(self, job_id: str, preferred_ext: Optional[str] = None) -> Optional[str]:
        """
        Path of the finished file for `job_id`, ignoring in-flight temp files.
        With several candidates, one ending in `preferred_ext` wins.
        """
        if not job_id:
            return None
        names = [n for n in self._entries(job_id) if not functions.is_temp_file(n)]
        if not names:
            return None
        if preferred_ext and len(names) > 1:
            wanted = [n for n in names if n.lower().endswith("." + preferred_ext)]
            if wanted:
                names = wanted
        return os.path.join(self._base_dir, names[0])

    def discard(self, job_id: str) -> int:
        """Remove every file of `job_id`, partial or not."""
        removed = 0
        for name in self._entries(job_id):
            if remove_quietly(os.path.join(self._base_dir, name)):
                removed += 1
        if removed:
            logger.info("artifact.discarded job=%s files=%d", job_id, removed)
        return removed

    def discard_except(self, job_id: str, keep: str) -> int:
        """Remove intermediate siblings so only `keep` remains for `job_id`."""
        keep_name = os.path.basename(keep)
        removed = 0
        for name in self._entries(job_id):
            if name != keep_name and remove_quietly(os.path.join(self._base_dir, name)):
                removed += 1
        if removed:
            logger.info("artifact.siblings_removed job=%s files=%d", job_id, removed)
        return removed

    def sweep_older_than(self, max_age_seconds: float) -> int:
        """Delete files left behind by a previous run (timers do not survive restarts)."""
        now = time.time()
        removed = 0
        try:
            names = os.listdir(self._base_dir)
        except FileNotFoundError:
            return 0
        for name in names:
            path = os.path.join(self._base_dir, name)
            try:
                if not os.path.isfile(path):
                    continue
                if now - os.path.getmtime(path) > max_age_seconds:
                    removed += int(remove_quietly(path))
            except FileNotFoundError:
                continue
        if removed:
            logger.info("artifact.sweep removed=%d dir=%s", removed, self._base_dir)
        return removed
