"""HTTP surface: submit stream, cancel, status, artifact fetch with ranges."""
import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from controller.controller_dependencies import (
    get_artifact_service,
    get_download_service,
)
from main import app
from service.artifact_service import parse_range
from util.errors import RangeNotSatisfiable

SUBMIT = "/api/v1/download-youtube"


def _events(body: str):
    frames = [f for f in body.split("\n\n") if f.strip()]
    assert all(f.startswith("data: ") for f in frames)
    return [json.loads(f[len("data: "):]) for f in frames]


@pytest.fixture
def client_for(make_services):
    def _client(**kw):
        svc = make_services(**kw)
        app.dependency_overrides[get_download_service] = lambda: svc.downloads
        app.dependency_overrides[get_artifact_service] = lambda: svc.files
        return svc

    yield _client
    app.dependency_overrides.clear()


def test_healthz():
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"ok": True}


def test_submit_streams_events_and_serves_file(client_for):
    svc = client_for(retention=30)
    with TestClient(app) as client:
        res = client.post(SUBMIT, json={"url": "https://youtu.be/abc123", "format": "mp3"})
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/event-stream")
        events = _events(res.text)
        assert events[0]["type"] == "started"
        assert events[-1]["type"] == "complete"
        job_id = events[0]["payload"]["jobId"]
        ref = events[-1]["payload"]["artifactRef"]
        assert events[-1]["payload"]["filename"] == "abc123-title.mp3"

        full = client.get(ref)
        assert full.status_code == 200
        assert full.headers["content-type"] == "audio/mpeg"
        assert full.headers["accept-ranges"] == "bytes"
        assert int(full.headers["content-length"]) == 3586130
        assert len(full.content) == 3586130
        assert "abc123-title.mp3" in full.headers["content-disposition"]

        part = client.get(ref, headers={"Range": "bytes=100-199"})
        assert part.status_code == 206
        assert part.headers["content-range"] == "bytes 100-199/3586130"
        assert part.headers["content-length"] == "100"
        assert len(part.content) == 100

        tail = client.get(ref, headers={"Range": "bytes=-10"})
        assert tail.status_code == 206
        assert tail.headers["content-range"] == "bytes 3586120-3586129/3586130"

        bad = client.get(ref, headers={"Range": "bytes=9999999-"})
        assert bad.status_code == 416
        assert bad.headers["content-range"] == "bytes */3586130"

        assert client.delete(f"/api/v1/download-file/{job_id}").status_code == 200
        gone = client.get(ref)
        assert gone.status_code == 404
        assert gone.json()["detail"] == "File not found or has expired"
    assert svc.job_files(job_id) == []


def test_invalid_url_is_400(client_for):
    client_for()
    with TestClient(app) as client:
        res = client.post(SUBMIT, json={"url": "https://example.com/x", "format": "video"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid YouTube URL"


def test_missing_params_is_422(client_for):
    client_for()
    with TestClient(app) as client:
        assert client.post(SUBMIT, json={"url": "https://youtu.be/abc"}).status_code == 422
        assert (
            client.post(
                SUBMIT, json={"url": "https://youtu.be/abc", "format": "flac"}
            ).status_code
            == 422
        )


def test_rate_limit_is_429(client_for):
    client_for(times=2)
    body = {"url": "https://youtu.be/crash", "format": "audio"}
    with TestClient(app) as client:
        for _ in range(2):
            res = client.post(SUBMIT, json=body)
            assert res.status_code == 200
            assert _events(res.text)[-1]["type"] == "error"
        res = client.post(SUBMIT, json=body)
        assert res.status_code == 429
        assert res.json()["error"] == "rate_limited"
        assert "Maximum 2 downloads" in res.json()["message"]
        assert int(res.headers["retry-after"]) > 0


def test_cancel_and_status_unknown_job(client_for):
    client_for()
    with TestClient(app) as client:
        assert client.delete(f"{SUBMIT}/unknown").status_code == 404
        assert client.get(f"{SUBMIT}/unknown").status_code == 404


def test_fetch_unknown_artifact_is_404(client_for):
    client_for()
    with TestClient(app) as client:
        res = client.get("/api/v1/download-file/nope/file.mp4")
        assert res.status_code == 404


def test_parse_range_rules():
    assert parse_range(None, 100) is None
    assert parse_range("bytes=0-9", 100) == (0, 9)
    assert parse_range("bytes=90-", 100) == (90, 99)
    assert parse_range("bytes=90-500", 100) == (90, 99)
    assert parse_range("bytes=-5", 100) == (95, 99)
    assert parse_range("bytes=-500", 100) == (0, 99)
    assert parse_range("bytes=0-1,5-6", 100) is None
    assert parse_range("items=0-1", 100) is None
    assert parse_range("bytes=9-3", 100) is None
    with pytest.raises(RangeNotSatisfiable):
        parse_range("bytes=100-", 100)
    with pytest.raises(RangeNotSatisfiable):
        parse_range("bytes=-0", 100)


def test_range_error_carries_416_and_size():
    exc = RangeNotSatisfiable(100)
    assert exc.status_code == status.HTTP_416_RANGE_NOT_SATISFIABLE == 416
    assert exc.headers["Content-Range"] == "bytes */100"
