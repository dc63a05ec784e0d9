# controller/artifact_controller.py
from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import StreamingResponse
from typing import Optional
from config.settings import settings
from model.api import CancelResponse
from service.artifact_service import ArtifactService
from service.download_service import DownloadService
from util.constants import InternalURIs
from util.enums import ErrorMessage
from util.errors import AppError
from controller.controller_dependencies import (
    get_artifact_service,
    get_download_service,
)

artifact_router = APIRouter()


@artifact_router.get(InternalURIs.DOWNLOAD_FILE)
async def download_file(
    job_id: str,
    filename: str,
    range_header: Optional[str] = Header(default=None, alias="range"),
    service: ArtifactService = Depends(get_artifact_service),
):
    chunk = await service.open(job_id, filename, range_header)
    return StreamingResponse(
        chunk.iter_bytes(settings.STREAM_CHUNK_BYTES),
        status_code=(
            status.HTTP_206_PARTIAL_CONTENT if chunk.partial else status.HTTP_200_OK
        ),
        media_type=chunk.content_type,
        headers=chunk.headers(),
    )


@artifact_router.delete(InternalURIs.PURGE_FILE, response_model=CancelResponse)
async def purge_file(
    job_id: str,
    service: DownloadService = Depends(get_download_service),
) -> CancelResponse:
    if not await service.purge(job_id):
        raise AppError.of(ErrorMessage.FILE_NOT_FOUND)
    return CancelResponse(ok=True, jobId=job_id, message="File deleted")
