# util/constants.py
import re
from typing import Dict, Final, Tuple


class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    DOWNLOAD_YOUTUBE = V1 + "/download-youtube"
    DOWNLOAD_JOB = DOWNLOAD_YOUTUBE + "/{job_id}"
    DOWNLOAD_FILE = V1 + "/download-file/{job_id}/{filename}"
    PURGE_FILE = V1 + "/download-file/{job_id}"


class ExternalURIs:
    pass


YOUTUBE_URL_RE: Final[re.Pattern] = re.compile(
    r"^(https?://)?((www|m|music)\.)?(youtube\.com|youtu\.be)/.+", re.IGNORECASE
)

# Suffixes yt-dlp uses while a transfer or remux is still in flight.
TEMP_SUFFIXES: Final[Tuple[str, ...]] = (".part", ".ytdl", ".temp", ".tmp")

CONTENT_TYPES: Final[Dict[str, str]] = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "opus": "audio/ogg",
}
DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"

SSE_HEADERS: Final[Dict[str, str]] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
