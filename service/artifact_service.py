# service/artifact_service.py
import logging
import os
import re
from dataclasses import dataclass
from typing import BinaryIO, Final, Iterator, Optional, Tuple
from config.settings import settings
from repository.artifact_repository import ArtifactRepository
from repository.job_repository import JobRepository
from util import functions
from util.enums import ErrorMessage
from util.errors import AppError, RangeNotSatisfiable

logger = logging.getLogger(__name__)

_RANGE_RE: Final[re.Pattern] = re.compile(r"bytes=(\d*)-(\d*)")


def parse_range(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """
    Resolve a single `Range` header against a file of `size` bytes.

    Returns an inclusive (start, end) pair, or None when the header is
    absent, malformed or asks for several ranges (caller sends the whole
    file). Raises RangeNotSatisfiable when the range starts past the end.
    """
    if not header:
        return None
    m = _RANGE_RE.fullmatch(header.strip().replace(" ", ""))
    if not m:
        return None
    first, last = m.groups()
    if not first and not last:
        return None

    if not first:
        suffix = int(last)
        if suffix == 0:
            raise RangeNotSatisfiable(size)
        start, end = max(0, size - suffix), size - 1
    else:
        start = int(first)
        end = int(last) if last else size - 1
        if end < start:
            return None
        end = min(end, size - 1)

    if start >= size:
        raise RangeNotSatisfiable(size)
    return start, end


@dataclass
class ArtifactSlice:
    handle: BinaryIO
    filename: str
    size: int
    start: int
    end: int
    partial: bool
    content_type: str

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def headers(self) -> dict:
        h = {
            "Accept-Ranges": "bytes",
            "Content-Length": str(self.length),
            "Content-Disposition": functions.content_disposition(self.filename),
            "Cache-Control": "no-cache",
        }
        if self.partial:
            h["Content-Range"] = f"bytes {self.start}-{self.end}/{self.size}"
        return h

    def iter_bytes(self, chunk_size: int = settings.STREAM_CHUNK_BYTES) -> Iterator[bytes]:
        # The open handle keeps the bytes readable even if cleanup unlinks the path.
        try:
            self.handle.seek(self.start)
            remaining = self.length
            while remaining > 0:
                chunk = self.handle.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk
        finally:
            self.handle.close()


class ArtifactService:
    """
    Serves finished artifacts. Every request re-scans the download
    directory, so an expired file is a 404, never stale bytes.
    """

    def __init__(self, jobs: JobRepository, artifacts: ArtifactRepository) -> None:
        self._jobs = jobs
        self._artifacts = artifacts

    async def resolve(self, job_id: str) -> Optional[str]:
        # Anything on disk for a job that is still running is a partial.
        if await self._jobs.lookup(job_id) is not None:
            return None
        return self._artifacts.find(job_id)

    async def open(
        self, job_id: str, filename: str, range_header: Optional[str] = None
    ) -> ArtifactSlice:
        path = await self.resolve(job_id)
        if path is None:
            logger.info("artifact.miss job=%s", job_id)
            raise AppError.of(ErrorMessage.FILE_NOT_FOUND)
        try:
            handle = open(path, "rb")
        except FileNotFoundError:
            logger.info("artifact.vanished job=%s", job_id)
            raise AppError.of(ErrorMessage.FILE_NOT_FOUND)

        try:
            size = os.fstat(handle.fileno()).st_size
            span = parse_range(range_header, size)
        except Exception:
            handle.close()
            raise

        start, end = span if span is not None else (0, size - 1)
        display = filename or functions.display_filename(os.path.basename(path), job_id)
        logger.info(
            "artifact.serve job=%s bytes=%d-%d/%d partial=%s",
            job_id,
            start,
            end,
            size,
            span is not None,
        )
        return ArtifactSlice(
            handle=handle,
            filename=display or os.path.basename(path),
            size=size,
            start=start,
            end=end,
            partial=span is not None,
            content_type=functions.content_type_for(path),
        )
