"""Event publisher ordering and SSE framing."""
import asyncio
import json

import pytest

from conftest import collect
from core.streaming import (
    EventPublisher,
    error_event,
    make_event_stream,
    processing_event,
    progress_event,
    sse_line,
    started_event,
)
from model.api import ProgressRecord


def _progress(pct: float):
    return progress_event(ProgressRecord(percentage=pct, speed="1MiB/s", eta="00:01", size="3MiB"))


def test_sse_frame_format():
    frame = sse_line({"type": "processing", "payload": {}})
    assert frame == b'data: {"type":"processing","payload":{}}\n\n'


@pytest.mark.asyncio
async def test_undelivered_progress_is_coalesced():
    pub = EventPublisher("job")
    pub.publish(started_event("job"))
    for pct in (10.0, 20.0, 30.0):
        pub.publish(_progress(pct))
    pub.publish(processing_event())
    pub.publish(error_event("boom"))

    events = await collect(pub)
    assert [e.type for e in events] == ["started", "progress", "processing", "error"]
    assert events[1].payload["percentage"] == 30.0


@pytest.mark.asyncio
async def test_nothing_after_terminal_event():
    pub = EventPublisher("job")
    pub.publish(error_event("first"))
    assert pub.publish(error_event("second")) is False
    assert pub.publish(_progress(1.0)) is False
    events = await collect(pub)
    assert [e.payload["message"] for e in events] == ["first"]


@pytest.mark.asyncio
async def test_consumer_sees_events_as_they_arrive():
    pub = EventPublisher("job")
    received = []

    async def consume():
        async for e in pub.events():
            received.append(e.type)

    task = asyncio.create_task(consume())
    pub.publish(started_event("job"))
    await asyncio.sleep(0.01)
    assert received == ["started"]
    pub.close()
    await asyncio.wait_for(task, 1)


@pytest.mark.asyncio
async def test_detach_drops_later_events():
    pub = EventPublisher("job")
    pub.publish(started_event("job"))
    pub.detach()
    assert pub.publish(_progress(5.0)) is False
    assert await collect(pub) == []


@pytest.mark.asyncio
async def test_stream_disconnect_detaches_publisher():
    pub = EventPublisher("job")
    pub.publish(started_event("job"))
    stream = make_event_stream(pub)
    first = await stream.__anext__()
    assert json.loads(first[len(b"data: "):])["payload"] == {"jobId": "job"}
    await stream.aclose()
    assert pub.detached
