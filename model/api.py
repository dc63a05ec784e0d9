# model/api.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, Literal, Optional
from util.enums import JobStatus, OutputFormat

# Legacy clients send container names instead of kinds.
_FORMAT_ALIASES = {"mp4": OutputFormat.VIDEO, "mp3": OutputFormat.AUDIO}


class DownloadRequest(BaseModel):
    url: str = Field(min_length=1)
    format: OutputFormat
    chatId: Optional[str] = None

    @field_validator("format", mode="before")
    @classmethod
    def _alias_format(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _FORMAT_ALIASES.get(v.strip().lower(), v.strip().lower())
        return v


class CancelResponse(BaseModel):
    ok: bool
    jobId: str
    message: str


class JobStatusResponse(BaseModel):
    jobId: str
    status: JobStatus
    format: OutputFormat
    startedAt: float


class ProgressRecord(BaseModel):
    percentage: float
    speed: str
    eta: str
    size: str


class StreamEvent(BaseModel):
    type: Literal["started", "progress", "processing", "complete", "error"]
    payload: Dict[str, Any] = Field(default_factory=dict)
