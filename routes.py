# routes.py
from fastapi import FastAPI
from controller.artifact_controller import artifact_router
from controller.download_controller import download_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(download_router)
    app.include_router(artifact_router)
