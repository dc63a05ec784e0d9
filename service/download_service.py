# service/download_service.py
import asyncio
import logging
from typing import Optional, Set, Tuple
from urllib.parse import quote
from config.settings import settings
from core import downloader
from core.downloader import DownloaderOptions
from core.progress_parser import is_error, is_transfer_finished, parse_progress
from core.streaming import (
    EventPublisher,
    complete_event,
    error_event,
    processing_event,
    progress_event,
    started_event,
)
from model.job import ArtifactDescriptor, Job
from repository.artifact_repository import ArtifactRepository
from repository.cleanup_repository import CleanupRepository, remove_quietly
from repository.job_repository import JobRepository
from repository.rate_limit_repository import RateLimitRepository
from util.constants import InternalURIs, YOUTUBE_URL_RE
from util.enums import ErrorMessage, JobStatus, OutputFormat
from util.errors import AppError, RateLimitExceeded
from util.logger import DOWNLOADER_LOGGER
from util.timing import timed

logger = logging.getLogger(__name__)
output_log = logging.getLogger(DOWNLOADER_LOGGER)

SHUTDOWN_GRACE_SECONDS = 5.0


class DownloadService:
    """
    Owns every piece of shared download state (registry, limiter, cleanup
    timers) and drives one asyncio task per admitted job:

        pending -> running -> processing -> complete
                      |            |
                      +-> failed <-+        running -> cancelled
    """

    def __init__(
        self,
        jobs: JobRepository,
        limiter: RateLimitRepository,
        cleanup: CleanupRepository,
        artifacts: ArtifactRepository,
        options: DownloaderOptions,
        retention_seconds: float = settings.RETENTION_SECONDS,
    ) -> None:
        self._jobs = jobs
        self._limiter = limiter
        self._cleanup = cleanup
        self._artifacts = artifacts
        self._options = options
        self._retention = float(retention_seconds)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def jobs(self) -> JobRepository:
        return self._jobs

    @property
    def artifacts(self) -> ArtifactRepository:
        return self._artifacts

    # ---------------- Lifecycle ----------------

    async def start(self) -> None:
        self._artifacts.sweep_older_than(self._retention)
        logger.info(
            "downloads.start dir=%s retention=%.0fs",
            self._artifacts.base_dir,
            self._retention,
        )

    async def shutdown(self) -> None:
        for job in await self._jobs.active():
            await self._jobs.cancel(job.id)
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=SHUTDOWN_GRACE_SECONDS)
        for task in list(self._tasks):
            task.cancel()
        for path in self._cleanup.shutdown():
            remove_quietly(path)
        await self._limiter.purge_expired()
        logger.info("downloads.shutdown")

    # ---------------- Operations ----------------

    async def submit(
        self, url: str, fmt: OutputFormat, client_id: str
    ) -> Tuple[Job, EventPublisher]:
        """
        Validate, admit, register and launch a job. Raises AppError before
        anything is allocated when the URL is bad or the client is over quota.
        """
        url = (url or "").strip()
        if not YOUTUBE_URL_RE.match(url):
            logger.warning("download.rejected reason=invalid_url client=%s", client_id)
            raise AppError.of(ErrorMessage.INVALID_URL)

        if not await self._limiter.admit(client_id):
            retry_after = await self._limiter.retry_after(client_id)
            logger.warning(
                "download.rejected reason=rate_limited client=%s retry_after=%d",
                client_id,
                retry_after,
            )
            raise RateLimitExceeded(self._limiter.times, retry_after)

        job = Job(url=url, format=fmt, client_id=client_id)
        await self._jobs.register(job)
        publisher = EventPublisher(job.id)

        task = asyncio.create_task(self._run(job, publisher), name=f"download:{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "download.submitted job=%s format=%s client=%s",
            job.id,
            fmt.value,
            client_id,
        )
        return job, publisher

    async def cancel(self, job_id: str) -> bool:
        return await self._jobs.cancel(job_id)

    async def lookup(self, job_id: str) -> Optional[Job]:
        return await self._jobs.lookup(job_id)

    async def purge(self, job_id: str) -> bool:
        """Delete a finished artifact now instead of waiting for its timer."""
        if await self._jobs.lookup(job_id) is not None:
            return False
        owned = self._cleanup.cancel(job_id)
        removed = self._artifacts.discard(job_id)
        logger.info("download.purged job=%s timer=%s files=%d", job_id, bool(owned), removed)
        return owned is not None or removed > 0

    @staticmethod
    def artifact_ref(job_id: str, filename: str) -> str:
        return InternalURIs.DOWNLOAD_FILE.format(
            job_id=job_id, filename=quote(filename, safe="")
        )

    # ---------------- Job task ----------------

    async def _run(self, job: Job, publisher: EventPublisher) -> None:
        with timed(logger, "download.run", job=job.id, format=job.format.value) as outcome:
            try:
                await self._execute(job, publisher)
            except Exception:
                logger.exception("download.unexpected job=%s", job.id)
                if job.is_active:
                    self._fail(job, publisher, "Error processing downloaded file")
            finally:
                await self._jobs.remove(job.id)
                if job.status in (JobStatus.FAILED, JobStatus.CANCELLED):
                    self._artifacts.discard(job.id)
                publisher.close()
                outcome["status"] = job.status.value

    async def _execute(self, job: Job, publisher: EventPublisher) -> None:
        template = downloader.output_template(self._artifacts.base_dir, job.id)
        args = downloader.build_args(job.url, job.format, template, self._options)

        try:
            proc = await downloader.spawn(self._options, args)
        except OSError as exc:
            self._fail(job, publisher, f"Failed to start download: {exc}")
            return

        if job.status == JobStatus.CANCELLED:
            # cancelled while the process was starting
            self._terminate(proc)
            await proc.communicate()
            return

        job.process = proc
        job.status = JobStatus.RUNNING
        publisher.publish(started_event(job.id))
        logger.info("download.started job=%s pid=%s", job.id, proc.pid)

        try:
            await asyncio.gather(
                self._drain_stdout(job, publisher, proc.stdout),
                self._drain_stderr(job, publisher, proc),
            )
            code = await proc.wait()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            raise

        # Releases the handle; None means a cancel or error marker got there first.
        await self._jobs.remove(job.id)

        if job.status == JobStatus.CANCELLED:
            logger.info("download.cancelled job=%s code=%s", job.id, code)
            return
        if job.status == JobStatus.FAILED:
            return
        if code != 0:
            self._fail(job, publisher, f"Download failed with code {code}")
            return

        path = self._artifacts.find(job.id, preferred_ext=self._expected_ext(job.format))
        if path is None:
            self._fail(job, publisher, "Downloaded file not found")
            return
        try:
            artifact = ArtifactDescriptor.from_path(path, job.id)
        except FileNotFoundError:
            self._fail(job, publisher, "Downloaded file not found")
            return

        self._artifacts.discard_except(job.id, artifact.path)
        self._enter_processing(job, publisher)
        self._cleanup.schedule(job.id, artifact.path, self._retention)
        job.artifact = artifact
        job.status = JobStatus.COMPLETE
        publisher.publish(
            complete_event(artifact, self.artifact_ref(job.id, artifact.filename))
        )
        logger.info(
            "download.complete job=%s file=%s bytes=%d",
            job.id,
            artifact.filename,
            artifact.size,
        )

    async def _drain_stdout(
        self, job: Job, publisher: EventPublisher, stream: asyncio.StreamReader
    ) -> None:
        async for line in _lines(stream, job.id):
            output_log.debug("job=%s out %s", job.id, line)
            # keep reading after cancel/failure so the pipe never fills up
            if not job.is_active:
                continue
            record = parse_progress(line)
            if record is not None and job.status == JobStatus.RUNNING:
                publisher.publish(progress_event(record))
            if is_transfer_finished(line):
                self._enter_processing(job, publisher)

    async def _drain_stderr(
        self, job: Job, publisher: EventPublisher, proc: asyncio.subprocess.Process
    ) -> None:
        async for line in _lines(proc.stderr, job.id):
            output_log.debug("job=%s err %s", job.id, line)
            if is_error(line) and job.is_active:
                self._fail(job, publisher, f"Download failed: {line}")
                # terminal now, even if the process is slow to exit
                await self._jobs.remove(job.id)
                self._terminate(proc)

    # ---------------- Transitions ----------------

    @staticmethod
    def _enter_processing(job: Job, publisher: EventPublisher) -> None:
        if job.status != JobStatus.RUNNING:
            return
        job.status = JobStatus.PROCESSING
        publisher.publish(processing_event())
        logger.info("download.processing job=%s", job.id)

    @staticmethod
    def _fail(job: Job, publisher: EventPublisher, message: str) -> None:
        job.status = JobStatus.FAILED
        publisher.publish(error_event(message))
        logger.warning("download.failed job=%s reason=%s", job.id, message)

    @staticmethod
    def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            pass

    def _expected_ext(self, fmt: OutputFormat) -> str:
        if fmt == OutputFormat.AUDIO:
            return self._options.audio_format
        return self._options.video_container


async def _lines(stream: Optional[asyncio.StreamReader], job_id: str):
    if stream is None:
        return
    while True:
        try:
            raw = await stream.readline()
        except ValueError:
            # over-long line; readline already dropped it from the buffer
            logger.warning("download.output.overlong job=%s", job_id)
            continue
        if not raw:
            return
        line = raw.decode("utf-8", errors="replace").strip()
        if line:
            yield line
