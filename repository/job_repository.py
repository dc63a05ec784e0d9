# repository/job_repository.py
import asyncio
import logging
from typing import Dict, List, Optional
from model.job import Job
from util.enums import JobStatus

logger = logging.getLogger(__name__)


class JobRepository:
    """
    Active-job registry. A job is present from admission until its process
    exits or it is cancelled; absence means "not running".
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = asyncio.Lock()

    # ---------------- Core CRUD ----------------

    async def register(self, job: Job) -> None:
        async with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"job already registered: {job.id}")
            self._jobs[job.id] = job

    async def lookup(self, job_id: str) -> Optional[Job]:
        if not job_id:
            return None
        async with self._lock:
            return self._jobs.get(job_id)

    async def remove(self, job_id: str) -> Optional[Job]:
        """
        Drop the job and release its process handle. Returns the job only to
        the first caller; later calls get None.
        """
        async with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is not None:
            job.release_process()
        return job

    async def active(self) -> List[Job]:
        async with self._lock:
            return list(self._jobs.values())

    # ---------------- Cancellation ----------------

    async def cancel(self, job_id: str) -> bool:
        """
        Signal and drop an in-flight job. Unknown or already-terminal jobs
        are left alone and yield False.
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or not job.is_active:
                return False
            del self._jobs[job_id]
            job.status = JobStatus.CANCELLED
            proc = job.release_process()
        if proc is not None and proc.returncode is None:
            try:
                proc.terminate()
            except ProcessLookupError:
                # exited between the returncode check and the signal
                pass
        logger.info("job.cancelled job=%s signalled=%s", job_id, proc is not None)
        return True
