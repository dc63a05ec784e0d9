"""In-memory job registry and cleanup timers."""
import asyncio

import pytest

from model.job import Job
from repository.cleanup_repository import CleanupRepository
from repository.job_repository import JobRepository
from util.enums import JobStatus, OutputFormat


def _job() -> Job:
    return Job(url="https://youtu.be/abc123", format=OutputFormat.AUDIO, client_id="c")


class FakeProcess:
    def __init__(self):
        self.returncode = None
        self.signals = 0

    def terminate(self):
        self.signals += 1


@pytest.mark.asyncio
async def test_register_lookup_remove():
    jobs = JobRepository()
    job = _job()
    await jobs.register(job)
    assert await jobs.lookup(job.id) is job
    assert await jobs.remove(job.id) is job
    assert await jobs.lookup(job.id) is None
    # second removal is a no-op
    assert await jobs.remove(job.id) is None


@pytest.mark.asyncio
async def test_duplicate_register_rejected():
    jobs = JobRepository()
    job = _job()
    await jobs.register(job)
    with pytest.raises(ValueError):
        await jobs.register(job)


@pytest.mark.asyncio
async def test_cancel_signals_process_once_and_removes():
    jobs = JobRepository()
    job = _job()
    proc = FakeProcess()
    job.process = proc
    await jobs.register(job)

    assert await jobs.cancel(job.id) is True
    assert proc.signals == 1
    assert job.process is None
    assert job.status == JobStatus.CANCELLED
    assert await jobs.lookup(job.id) is None

    assert await jobs.cancel(job.id) is False
    assert proc.signals == 1


@pytest.mark.asyncio
async def test_cancel_unknown_is_noop():
    assert await JobRepository().cancel("nope") is False


@pytest.mark.asyncio
async def test_cancel_skips_exited_process():
    jobs = JobRepository()
    job = _job()
    proc = FakeProcess()
    proc.returncode = 0
    job.process = proc
    await jobs.register(job)
    assert await jobs.cancel(job.id) is True
    assert proc.signals == 0


@pytest.mark.asyncio
async def test_cleanup_fires_and_deletes(tmp_path):
    target = tmp_path / "job.a-b.mp3"
    target.write_bytes(b"x")
    cleanup = CleanupRepository()
    cleanup.schedule("job", str(target), 0.05)
    assert cleanup.pending("job")
    await asyncio.sleep(0.2)
    assert not target.exists()
    assert not cleanup.pending("job")


@pytest.mark.asyncio
async def test_cleanup_tolerates_missing_file(tmp_path):
    cleanup = CleanupRepository()
    cleanup.schedule("job", str(tmp_path / "gone.mp4"), 0.01)
    await asyncio.sleep(0.1)
    assert not cleanup.pending("job")


@pytest.mark.asyncio
async def test_cleanup_cancel_keeps_file(tmp_path):
    target = tmp_path / "job.x.mp4"
    target.write_bytes(b"x")
    cleanup = CleanupRepository()
    cleanup.schedule("job", str(target), 0.05)
    assert cleanup.cancel("job") == str(target)
    assert cleanup.cancel("job") is None
    await asyncio.sleep(0.15)
    assert target.exists()


@pytest.mark.asyncio
async def test_cleanup_reschedule_replaces_timer(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.write_bytes(b"1")
    second.write_bytes(b"2")
    cleanup = CleanupRepository()
    cleanup.schedule("job", str(first), 0.05)
    cleanup.schedule("job", str(second), 0.05)
    await asyncio.sleep(0.2)
    assert first.exists()
    assert not second.exists()


@pytest.mark.asyncio
async def test_cleanup_shutdown_returns_owned_paths(tmp_path):
    cleanup = CleanupRepository()
    cleanup.schedule("a", str(tmp_path / "a"), 60)
    cleanup.schedule("b", str(tmp_path / "b"), 60)
    assert sorted(cleanup.shutdown()) == sorted([str(tmp_path / "a"), str(tmp_path / "b")])
    assert not cleanup.pending("a")


@pytest.mark.asyncio
async def test_cancel_leaves_terminal_job_alone():
    jobs = JobRepository()
    job = _job()
    proc = FakeProcess()
    job.process = proc
    await jobs.register(job)
    job.status = JobStatus.FAILED

    assert await jobs.cancel(job.id) is False
    assert job.status == JobStatus.FAILED
    assert proc.signals == 0
    assert await jobs.lookup(job.id) is job
