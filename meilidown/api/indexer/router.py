"""Indexer status and manual trigger endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status

from meilidown.api.indexer.schemas import IndexerStatus, RunRequestResponse
from meilidown.config.logger import app_logger
from meilidown.config.settings import settings
from meilidown.services.indexer_worker import IndexerWorker
from meilidown.utils.responses import SuccessResponse, success_response

router = APIRouter(prefix="/v1/indexer", tags=["indexer"])


def _get_worker(request: Request) -> Optional[IndexerWorker]:
    return getattr(request.app.state, "worker", None)


@router.get(
    "/status",
    response_model=SuccessResponse[IndexerStatus],
    summary="State of the background indexer and its last cycle",
)
async def indexer_status(request: Request) -> SuccessResponse[IndexerStatus]:
    worker = _get_worker(request)
    if worker is None:
        data = IndexerStatus(
            running=False,
            interactive=settings.INDEXER_INTERACTIVE,
            interval_minutes=settings.INDEXER_INTERVAL_MINUTES,
            cycles_completed=0,
        )
        return success_response(data=data, message="Indexer is not running")

    data = IndexerStatus(
        running=worker.running,
        stopping=worker.stopping,
        interactive=worker.config.INDEXER_INTERACTIVE,
        interval_minutes=worker.config.INDEXER_INTERVAL_MINUTES,
        cycles_completed=worker.cycles_completed,
        last_cycle=worker.last_report,
    )
    return success_response(data=data, message="Indexer status retrieved")


@router.post(
    "/run",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SuccessResponse[RunRequestResponse],
    summary="Start the next indexing cycle now",
)
async def request_indexing_run(request: Request) -> SuccessResponse[RunRequestResponse]:
    """Manual continuation signal; replaces the timer in interactive mode."""
    worker = _get_worker(request)
    if worker is None or not worker.running or worker.stopping:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Indexer is not running",
        )

    worker.trigger()
    app_logger.info("Manual indexing run requested")
    return success_response(data=RunRequestResponse(), message="Indexing cycle requested")
