# core/downloader.py
import asyncio
import os
import shlex
from dataclasses import dataclass
from typing import List, Sequence
from config.settings import settings
from util.enums import OutputFormat

# Progress lines are short, but error tracebacks from extractors can be long.
STREAM_LIMIT = 1024 * 1024


@dataclass(frozen=True)
class DownloaderOptions:
    command: Sequence[str]
    audio_format: str = settings.AUDIO_FORMAT
    audio_quality: str = settings.AUDIO_QUALITY
    video_max_height: int = settings.VIDEO_MAX_HEIGHT
    video_container: str = settings.VIDEO_CONTAINER

    @classmethod
    def from_settings(cls) -> "DownloaderOptions":
        return cls(command=tuple(shlex.split(settings.DOWNLOADER_COMMAND)))


def output_template(download_dir: str, job_id: str) -> str:
    """
    `<dir>/<jobId>.<videoId>-<title>.<ext>`: the job id prefix is what later
    locates the artifact; the rest becomes the display filename.
    """
    return os.path.join(download_dir, f"{job_id}.%(id)s-%(title)s.%(ext)s")


def build_args(
    url: str, fmt: OutputFormat, template: str, options: DownloaderOptions
) -> List[str]:
    args = [
        url,
        "--no-playlist",
        "--newline",
        "--progress",
        "--restrict-filenames",
        "--output",
        template,
    ]
    if fmt == OutputFormat.AUDIO:
        args += [
            "--extract-audio",
            "--audio-format",
            options.audio_format,
            "--audio-quality",
            options.audio_quality,
        ]
    else:
        args += [
            "--format",
            f"best[height<={options.video_max_height}]",
            "--merge-output-format",
            options.video_container,
        ]
    return args


async def spawn(options: DownloaderOptions, args: Sequence[str]) -> asyncio.subprocess.Process:
    """Start the downloader; raises OSError if the binary cannot be executed."""
    if not options.command:
        raise FileNotFoundError("downloader command is empty")
    return await asyncio.create_subprocess_exec(
        *options.command,
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        limit=STREAM_LIMIT,
    )
