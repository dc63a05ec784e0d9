# util/types.py
from typing import Literal, TypedDict


# Flow: Narrow types for server-sent download events.
EventType = Literal["started", "progress", "processing", "complete", "error"]

TERMINAL_EVENTS: frozenset = frozenset({"complete", "error"})


class StartedPayload(TypedDict):
    jobId: str


class ProgressPayload(TypedDict):
    percentage: float
    speed: str
    eta: str
    size: str


class CompletePayload(TypedDict):
    filename: str
    size: str
    artifactRef: str


class ErrorPayload(TypedDict):
    message: str
