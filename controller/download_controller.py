# controller/download_controller.py
from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from core.streaming import make_event_stream
from model.api import CancelResponse, DownloadRequest, JobStatusResponse
from service.download_service import DownloadService
from util.constants import InternalURIs, SSE_HEADERS
from util.enums import ErrorMessage
from util.errors import AppError
from controller.controller_dependencies import (
    get_client_identity,
    get_download_service,
)

download_router = APIRouter()


@download_router.post(InternalURIs.DOWNLOAD_YOUTUBE)
async def start_download(
    payload: DownloadRequest,
    client_id: str = Depends(get_client_identity),
    service: DownloadService = Depends(get_download_service),
):
    _, publisher = await service.submit(payload.url, payload.format, client_id)
    return StreamingResponse(
        make_event_stream(publisher),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@download_router.delete(
    InternalURIs.DOWNLOAD_JOB,
    response_model=CancelResponse,
    status_code=status.HTTP_200_OK,
)
async def cancel_download(
    job_id: str,
    service: DownloadService = Depends(get_download_service),
) -> CancelResponse:
    if not await service.cancel(job_id):
        raise AppError.of(ErrorMessage.DOWNLOAD_NOT_FOUND)
    return CancelResponse(ok=True, jobId=job_id, message="Download cancelled")


@download_router.get(InternalURIs.DOWNLOAD_JOB, response_model=JobStatusResponse)
async def download_status(
    job_id: str,
    service: DownloadService = Depends(get_download_service),
) -> JobStatusResponse:
    job = await service.lookup(job_id)
    if job is None:
        raise AppError.of(ErrorMessage.DOWNLOAD_NOT_FOUND)
    return JobStatusResponse(
        jobId=job.id, status=job.status, format=job.format, startedAt=job.started_at
    )
