# config/settings.py
import os
import sys
import tempfile
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(default=Environment.DEV.value, validation_alias="APP_ENV")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(
        default="http://localhost:3000", validation_alias="ALLOWED_ORIGIN"
    )
    RATE_LIMIT_TIMES: int = Field(default=5, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=3600, validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Downloader
    DOWNLOAD_DIR: str = Field(
        default=os.path.join(tempfile.gettempdir(), "youtube-downloads"),
        validation_alias="DOWNLOAD_DIR",
    )
    DOWNLOADER_COMMAND: str = Field(default="yt-dlp", validation_alias="DOWNLOADER_COMMAND")
    AUDIO_FORMAT: str = "mp3"
    AUDIO_QUALITY: str = Field(default="192K", validation_alias="AUDIO_QUALITY")
    VIDEO_MAX_HEIGHT: int = Field(default=720, validation_alias="VIDEO_MAX_HEIGHT")
    VIDEO_CONTAINER: str = "mp4"

    # Artifacts
    RETENTION_SECONDS: float = Field(default=180.0, validation_alias="RETENTION_SECONDS")
    STREAM_CHUNK_BYTES: int = 64 * 1024

    # Logging knobs
    LOGGER_NAME: str = "media-fetch"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
