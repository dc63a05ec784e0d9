# core/progress_parser.py
"""
yt-dlp progress line parser.

Grammar (version 1), one line, fields in fixed order:

    "[download]" WS PCT "%" WS "of" WS ["~" WS*] SIZE WS "at" WS SPEED WS "ETA" WS ETA [ANY]

    PCT   = \\d+(\\.\\d+)?
    SIZE  = non-space token        e.g. 3.42MiB
    SPEED = "Unknown B/s" | token  e.g. 1.21MiB/s
    ETA   = "Unknown" | token      e.g. 00:03

Lines are judged independently; anything else yields None.
"""
import re
from typing import Final, Optional
from model.api import ProgressRecord

PARSER_VERSION: Final[int] = 1

_PROGRESS_RE: Final[re.Pattern] = re.compile(
    r"\[download\]\s+(\d+(?:\.\d+)?)%\s+of\s+(?:~\s*)?(\S+)"
    r"\s+at\s+(Unknown B/s|\S+)\s+ETA\s+(Unknown|\S+)"
)

_FINISHED_RE: Final[re.Pattern] = re.compile(
    r"\[download\]\s+100(?:\.0+)?%|has already been downloaded"
)
_ERROR_MARKER: Final[str] = "ERROR"


def parse_progress(line: str) -> Optional[ProgressRecord]:
    m = _PROGRESS_RE.search(line)
    if not m:
        return None
    pct = min(100.0, float(m.group(1)))
    return ProgressRecord(
        percentage=pct,
        size=m.group(2),
        speed=m.group(3),
        eta=m.group(4),
    )


def is_transfer_finished(line: str) -> bool:
    return _FINISHED_RE.search(line) is not None


def is_error(line: str) -> bool:
    return _ERROR_MARKER in line
