# util/errors.py
from typing import Dict, Optional
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self,
        message: str,
        http_status: int = status.HTTP_400_BAD_REQUEST,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=http_status, detail=message, headers=headers)

    @classmethod
    def of(cls, error: ErrorMessage) -> "AppError":
        return cls(error.value.message, error.value.http_status)


class RateLimitExceeded(AppError):
    def __init__(self, times: int, retry_after: int) -> None:
        info = ErrorMessage.RATE_LIMITED.value
        self.retry_after = max(0, int(retry_after))
        super().__init__(
            info.message.format(times=times),
            info.http_status,
            headers={"Retry-After": str(self.retry_after)},
        )


class RangeNotSatisfiable(AppError):
    def __init__(self, size: int) -> None:
        info = ErrorMessage.RANGE_NOT_SATISFIABLE.value
        self.size = size
        super().__init__(
            info.message,
            info.http_status,
            headers={"Content-Range": f"bytes */{size}"},
        )
