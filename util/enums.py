# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class OutputFormat(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    INVALID_URL = ErrorInfo("Invalid YouTube URL", status.HTTP_400_BAD_REQUEST)
    RATE_LIMITED = ErrorInfo(
        "Rate limit exceeded. Maximum {times} downloads per hour.",
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
    DOWNLOAD_NOT_FOUND = ErrorInfo("Download not found", status.HTTP_404_NOT_FOUND)
    FILE_NOT_FOUND = ErrorInfo(
        "File not found or has expired", status.HTTP_404_NOT_FOUND
    )
    RANGE_NOT_SATISFIABLE = ErrorInfo(
        "Requested range not satisfiable",
        status.HTTP_416_RANGE_NOT_SATISFIABLE,
    )
