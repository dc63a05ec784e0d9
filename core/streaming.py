# core/streaming.py
import asyncio
import json
import logging
from collections import deque
from typing import AsyncIterator, Deque, Dict, Final
from model.api import ProgressRecord, StreamEvent
from model.job import ArtifactDescriptor
from util.types import (
    CompletePayload,
    ErrorPayload,
    ProgressPayload,
    StartedPayload,
    TERMINAL_EVENTS,
)

FRAME_SEP: Final[str] = "\n\n"
logger = logging.getLogger(__name__)


def sse_line(obj: Dict[str, object]) -> bytes:
    return ("data: " + json.dumps(obj, separators=(",", ":")) + FRAME_SEP).encode(
        "utf-8"
    )


# ---------------- Event constructors ----------------


def started_event(job_id: str) -> StreamEvent:
    payload: StartedPayload = {"jobId": job_id}
    return StreamEvent(type="started", payload=dict(payload))


def progress_event(record: ProgressRecord) -> StreamEvent:
    payload: ProgressPayload = {
        "percentage": record.percentage,
        "speed": record.speed,
        "eta": record.eta,
        "size": record.size,
    }
    return StreamEvent(type="progress", payload=dict(payload))


def processing_event() -> StreamEvent:
    return StreamEvent(type="processing", payload={})


def complete_event(artifact: ArtifactDescriptor, artifact_ref: str) -> StreamEvent:
    payload: CompletePayload = {
        "filename": artifact.filename,
        "size": artifact.display_size,
        "artifactRef": artifact_ref,
    }
    return StreamEvent(type="complete", payload=dict(payload))


def error_event(message: str) -> StreamEvent:
    payload: ErrorPayload = {"message": message}
    return StreamEvent(type="error", payload=dict(payload))


# ---------------- Publisher ----------------


class EventPublisher:
    """
    Single-consumer, ordered event channel for one job.

    publish() never waits: lifecycle events queue up (a job has at most
    three), while an undelivered progress event is overwritten by the next
    one. After a terminal event nothing else is accepted; after detach()
    everything is dropped.
    """

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self._pending: Deque[StreamEvent] = deque()
        self._ready = asyncio.Event()
        self._closed = False
        self._detached = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def detached(self) -> bool:
        return self._detached

    def publish(self, event: StreamEvent) -> bool:
        if self._closed or self._detached:
            return False
        if (
            event.type == "progress"
            and self._pending
            and self._pending[-1].type == "progress"
        ):
            self._pending[-1] = event
        else:
            self._pending.append(event)
        if event.type in TERMINAL_EVENTS:
            self._closed = True
        self._ready.set()
        return True

    def close(self) -> None:
        self._closed = True
        self._ready.set()

    def detach(self) -> None:
        if not self._detached:
            logger.info("stream.detached job=%s", self.job_id)
        self._detached = True
        self._pending.clear()
        self._ready.set()

    async def events(self) -> AsyncIterator[StreamEvent]:
        while True:
            while self._pending:
                yield self._pending.popleft()
            if self._closed or self._detached:
                return
            self._ready.clear()
            await self._ready.wait()


async def make_event_stream(publisher: EventPublisher) -> AsyncIterator[bytes]:
    """
    Encode a publisher as SSE frames. A consumer that goes away only
    detaches the publisher; the job itself keeps running.
    """
    try:
        async for event in publisher.events():
            yield sse_line(event.model_dump())
    finally:
        if not publisher.closed:
            publisher.detach()
        logger.info("stream.done job=%s", publisher.job_id)
