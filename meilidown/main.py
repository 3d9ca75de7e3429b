import asyncio
import os
import subprocess
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from meilisearch_python_sdk.errors import MeilisearchError

from meilidown.api.indexer.router import router as indexer_router
from meilidown.config.logger import app_logger, log_request
from meilidown.config.settings import ensure_indexer_settings, settings
from meilidown.services.indexer_worker import IndexerWorker
from meilidown.services.meilisearch_client import create_meilisearch_client

# How long shutdown waits for an in-flight cycle before cancelling it
SHUTDOWN_GRACE_SECONDS = 30.0

_git_sha_cache: Optional[str] = None


def get_git_sha() -> str:
    """Get the current Git commit SHA (cached to avoid blocking)."""
    global _git_sha_cache
    if _git_sha_cache is not None:
        return _git_sha_cache

    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=1.0
        )
        _git_sha_cache = result.stdout.strip()[:8]
        return _git_sha_cache
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        _git_sha_cache = "local-dev"
        return _git_sha_cache


async def _stop_worker(worker: IndexerWorker, task: "asyncio.Task[None]") -> None:
    worker.stop()
    try:
        await asyncio.wait_for(task, timeout=SHUTDOWN_GRACE_SECONDS)
    except asyncio.TimeoutError:
        app_logger.warning("Indexing cycle still running at shutdown; cancelled")
    except asyncio.CancelledError:
        pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the indexing loop on startup and stop it on shutdown."""
    # Startup
    app_logger.info(f"{settings.APP_NAME} starting up")
    app.state.worker = None
    worker_task = None

    if settings.INDEXER_ENABLED:
        # Configuration errors are fatal here and only here
        ensure_indexer_settings(settings)
        worker = IndexerWorker(settings)
        app.state.worker = worker
        worker_task = asyncio.create_task(worker.run())
        app_logger.info(
            f"Indexer scheduled every {settings.INDEXER_INTERVAL_MINUTES:g} minute(s)"
            + (" (interactive)" if settings.INDEXER_INTERACTIVE else "")
        )
    else:
        app_logger.info("Indexer disabled (INDEXER_ENABLED=false)")

    yield

    # Shutdown
    app_logger.info(f"{settings.APP_NAME} shutting down")
    if worker_task is not None:
        await _stop_worker(app.state.worker, worker_task)
    app_logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing information using Loguru."""
    start_time = datetime.now()
    try:
        response = await call_next(request)
    except Exception as e:
        log_request(request, None, (datetime.now() - start_time).total_seconds(), error=e)
        raise
    log_request(request, response.status_code, (datetime.now() - start_time).total_seconds())
    return response


@app.get("/", tags=["health"])
async def root():
    """Root endpoint with basic service information."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "status": "operational",
        "index": settings.MEILISEARCH_INDEX_NAME,
        "docs": "/docs",
    }


@app.get("/status", tags=["health"])
async def status():
    """Status endpoint with build information for CI/CD monitoring."""
    build_number = os.getenv("BUILD_NUMBER", "local-dev")
    git_sha = os.getenv("GIT_SHA", os.getenv("GITHUB_SHA", get_git_sha()))
    environment = os.getenv("ENVIRONMENT", os.getenv("ENV", "development"))

    return {
        "status": "ok",
        "build": build_number,
        "sha": git_sha,
        "env": environment
    }


@app.get("/health/index", tags=["health"])
async def health_index():
    """Search index health endpoint: asks Meilisearch for its status."""
    try:
        async with create_meilisearch_client(settings) as client:
            health = await client.health()
    except (MeilisearchError, ValueError) as e:
        app_logger.warning(f"Meilisearch health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "index": "unavailable", "message": str(e)}
        )
    return {"status": "ok", "index": str(health.status), "url": settings.MEILISEARCH_URL}


app.include_router(indexer_router)


if __name__ == "__main__":
    import uvicorn

    app_logger.info(f"Starting {settings.APP_NAME}")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_config=None  # Use our custom logger
    )
