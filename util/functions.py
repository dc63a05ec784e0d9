# util/functions.py
import os
from urllib.parse import quote
from typing import Optional
from fastapi import Request
from util.constants import CONTENT_TYPES, DEFAULT_CONTENT_TYPE, TEMP_SUFFIXES


def format_megabytes(num_bytes: int) -> str:
    """
    Render a byte count the way the client displays it: "3.42 MB".
    """
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def content_type_for(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lstrip(".").lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def is_temp_file(filename: str) -> bool:
    return filename.lower().endswith(TEMP_SUFFIXES)


def job_prefix(job_id: str) -> str:
    return f"{job_id}."


def client_identity(request: Request, trust_proxy: bool) -> str:
    """
    - Behind a proxy: first X-Forwarded-For hop, then X-Real-IP.
    - Otherwise the socket peer; "unknown" if neither is available.
    """
    if trust_proxy:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            first = fwd.split(",")[0].strip()
            if first:
                return first
        real = request.headers.get("x-real-ip")
        if real:
            return real.strip()
    return request.client.host if request.client else "unknown"


def display_filename(filename: str, job_id: str) -> Optional[str]:
    prefix = job_prefix(job_id)
    if not filename.startswith(prefix):
        return None
    return filename[len(prefix):] or None


def content_disposition(filename: str) -> str:
    """
    Attachment header safe for latin-1 transports; the UTF-8 name rides in
    filename* for clients that understand it.
    """
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
