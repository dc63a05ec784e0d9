# main.py
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from core.downloader import DownloaderOptions
from fastapi.responses import JSONResponse
from repository.artifact_repository import ArtifactRepository
from repository.cleanup_repository import CleanupRepository
from repository.job_repository import JobRepository
from repository.rate_limit_repository import RateLimitRepository
from service.artifact_service import ArtifactService
from service.download_service import DownloadService
from util.logger import init_logger


def build_services() -> tuple[DownloadService, ArtifactService]:
    jobs = JobRepository()
    artifacts = ArtifactRepository(settings.DOWNLOAD_DIR)
    downloads = DownloadService(
        jobs=jobs,
        limiter=RateLimitRepository(
            times=settings.RATE_LIMIT_TIMES, window_seconds=settings.RATE_LIMIT_SECONDS
        ),
        cleanup=CleanupRepository(),
        artifacts=artifacts,
        options=DownloaderOptions.from_settings(),
        retention_seconds=settings.RETENTION_SECONDS,
    )
    return downloads, ArtifactService(jobs, artifacts)


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    downloads, artifacts = build_services()
    await downloads.start()
    fastApi.state.download_service = downloads
    fastApi.state.artifact_service = artifacts
    print(f"{Color.BLUE}Server Started{Color.RESET}")

    try:
        yield
    finally:
        try:
            await downloads.shutdown()
        except Exception as e:
            print("Error shutting down downloads:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Accept", "Range"],
    expose_headers=["Content-Range", "Content-Length", "Content-Disposition"],
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    retry_after = getattr(exc, "retry_after", settings.RATE_LIMIT_SECONDS)
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": getattr(exc, "detail", "Too many requests."),
        },
        headers={"Retry-After": str(retry_after)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
