"""Shared fixtures: services wired to a temp directory and a fake yt-dlp."""
import asyncio
import os
import sys
import tempfile
from pathlib import Path

# Keep the app's own lifespan away from the real download directory.
os.environ.setdefault("DOWNLOAD_DIR", tempfile.mkdtemp(prefix="media-fetch-test-"))
os.environ.setdefault("APP_ENV", "test")

import pytest

from core.downloader import DownloaderOptions
from repository.artifact_repository import ArtifactRepository
from repository.cleanup_repository import CleanupRepository
from repository.job_repository import JobRepository
from repository.rate_limit_repository import RateLimitRepository
from service.artifact_service import ArtifactService
from service.download_service import DownloadService

FAKE_YTDLP = Path(__file__).with_name("fake_ytdlp.py")


class Services:
    def __init__(self, download_dir: Path, times: int = 5, retention: float = 0.5):
        self.dir = download_dir
        self.jobs = JobRepository()
        self.limiter = RateLimitRepository(times=times, window_seconds=3600)
        self.cleanup = CleanupRepository()
        self.artifacts = ArtifactRepository(str(download_dir))
        self.downloads = DownloadService(
            jobs=self.jobs,
            limiter=self.limiter,
            cleanup=self.cleanup,
            artifacts=self.artifacts,
            options=DownloaderOptions(command=(sys.executable, str(FAKE_YTDLP))),
            retention_seconds=retention,
        )
        self.files = ArtifactService(self.jobs, self.artifacts)

    def job_files(self, job_id: str):
        return sorted(p.name for p in self.dir.iterdir() if p.name.startswith(job_id))


@pytest.fixture
def services(tmp_path):
    return Services(tmp_path / "downloads")


@pytest.fixture
def make_services(tmp_path):
    def _make(**kw):
        return Services(tmp_path / "downloads", **kw)

    return _make


async def collect(publisher, timeout: float = 15.0):
    async def _drain():
        return [e async for e in publisher.events()]

    return await asyncio.wait_for(_drain(), timeout)


async def wait_until(predicate, timeout: float = 10.0, interval: float = 0.05):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if await predicate():
            return True
        await asyncio.sleep(interval)
    return False
