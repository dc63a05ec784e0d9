# controller/controller_dependencies.py
from fastapi import HTTPException, Request, status
from config.settings import settings
from service.artifact_service import ArtifactService
from service.download_service import DownloadService
from util import functions


def get_download_service(request: Request) -> DownloadService:
    service = getattr(request.app.state, "download_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Download service not initialized",
        )
    return service


def get_artifact_service(request: Request) -> ArtifactService:
    service = getattr(request.app.state, "artifact_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Artifact service not initialized",
        )
    return service


def get_client_identity(request: Request) -> str:
    return functions.client_identity(request, settings.TRUST_PROXY)
