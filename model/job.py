# model/job.py
import os
import time
from asyncio.subprocess import Process
from dataclasses import dataclass, field
from typing import Optional
from uuid import uuid4
from util import functions
from util.enums import JobStatus, OutputFormat


def new_job_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class ArtifactDescriptor:
    path: str
    filename: str
    size: int
    content_type: str
    created_at: float

    @classmethod
    def from_path(cls, path: str, job_id: str) -> "ArtifactDescriptor":
        """
        Stat the file now; raises FileNotFoundError if it is already gone.
        """
        st = os.stat(path)
        name = os.path.basename(path)
        display = functions.display_filename(name, job_id) or name
        return cls(
            path=path,
            filename=display,
            size=st.st_size,
            content_type=functions.content_type_for(name),
            created_at=time.time(),
        )

    @property
    def display_size(self) -> str:
        return functions.format_megabytes(self.size)


@dataclass
class Job:
    url: str
    format: OutputFormat
    client_id: str
    id: str = field(default_factory=new_job_id)
    status: JobStatus = JobStatus.PENDING
    started_at: float = field(default_factory=time.time)
    process: Optional[Process] = field(default=None, repr=False)
    artifact: Optional[ArtifactDescriptor] = None

    @property
    def is_active(self) -> bool:
        return self.status in (
            JobStatus.PENDING,
            JobStatus.RUNNING,
            JobStatus.PROCESSING,
        )

    def release_process(self) -> Optional[Process]:
        proc, self.process = self.process, None
        return proc
