"""Full-replace synchronization of the Meilisearch ``files`` index."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from meilisearch_python_sdk.models.settings import MeilisearchSettings

from meilidown.config.logger import app_logger
from meilidown.models.indexed_file import IndexedFile, IndexTaskOutcome
from meilidown.utils.errors import IndexUnavailableError

INDEX_PRIMARY_KEY = "uid"
HEALTHY_STATUS = "available"

FILTERABLE_ATTRIBUTES = ["uid", "name", "location", "content"]
SORTABLE_ATTRIBUTES = ["name", "order", "location"]
SEARCHABLE_ATTRIBUTES = ["name", "location", "content"]

DELETE_TASK = "Delete previous index"
ADD_TASK = "Add new index"
SETTINGS_TASK = "Update index settings"


def build_index_settings() -> MeilisearchSettings:
    return MeilisearchSettings(
        filterable_attributes=list(FILTERABLE_ATTRIBUTES),
        sortable_attributes=list(SORTABLE_ATTRIBUTES),
        searchable_attributes=list(SEARCHABLE_ATTRIBUTES),
    )


async def check_health(client: Any, require_healthy: bool = False) -> str:
    """Log the reported health status.

    Raises:
        IndexUnavailableError: If ``require_healthy`` and the status is not available
    """
    health = await client.health()
    status = str(health.status)
    app_logger.info(f"Meilisearch is {status}")
    if require_healthy and status != HEALTHY_STATUS:
        raise IndexUnavailableError(f"Meilisearch reported status '{status}'")
    return status


def _error_entries(error: Optional[Dict[str, Any]]) -> List[str]:
    if not error:
        return []
    return [f"{key}: {value}" for key, value in error.items()]


async def _wait_for_outcome(
    client: Any,
    name: str,
    submission: Awaitable[Any],
    timeout_in_ms: Optional[int],
) -> IndexTaskOutcome:
    """Await one task's acknowledgement, then poll it to a terminal state.

    Any failure, including transport errors a proxy returns as plain HTML,
    becomes an ``error`` outcome so the remaining tasks are still reported.
    """
    task_uid: Optional[int] = None
    try:
        info = await submission
        task_uid = info.task_uid
        result = await client.wait_for_task(task_uid, timeout_in_ms=timeout_in_ms)
    except Exception as exc:
        app_logger.error(f"Task '{name}': request failed: {exc}")
        return IndexTaskOutcome(name=name, task_uid=task_uid, status="error", errors=[str(exc)])

    status = str(result.status)
    app_logger.info(f"Task '{name}': {status}")

    errors = _error_entries(result.error)
    for entry in errors:
        app_logger.error(f"Task '{name}' error - {entry}")

    return IndexTaskOutcome(name=name, task_uid=task_uid, status=status, errors=errors)


async def _acknowledge_only(name: str, submission: Awaitable[Any]) -> IndexTaskOutcome:
    try:
        info = await submission
    except Exception as exc:
        app_logger.error(f"Task '{name}': request failed: {exc}")
        return IndexTaskOutcome(name=name, status="error", errors=[str(exc)])
    app_logger.warning(f"Task '{name}': not awaited, indexer is stopping")
    return IndexTaskOutcome(name=name, task_uid=info.task_uid, status="skipped")


async def update_index(
    client: Any,
    documents: Iterable[IndexedFile],
    *,
    index_name: str = "files",
    timeout_in_ms: Optional[int] = None,
    require_healthy: bool = False,
    stopping: Optional[asyncio.Event] = None,
) -> List[IndexTaskOutcome]:
    """Replace the index contents with ``documents``.

    Delete, add and settings requests are issued concurrently, then awaited
    one by one in that order. A failed task is logged with all of its error
    entries and never prevents the remaining tasks from being reported.
    """
    await check_health(client, require_healthy)

    index = client.index(index_name)
    payload = [document.model_dump() for document in documents]

    submissions = {
        DELETE_TASK: asyncio.ensure_future(index.delete_all_documents()),
        ADD_TASK: asyncio.ensure_future(index.add_documents(payload, primary_key=INDEX_PRIMARY_KEY)),
        SETTINGS_TASK: asyncio.ensure_future(index.update_settings(build_index_settings())),
    }

    outcomes: List[IndexTaskOutcome] = []
    for name, submission in submissions.items():
        if stopping is not None and stopping.is_set():
            outcomes.append(await _acknowledge_only(name, submission))
            continue
        outcomes.append(await _wait_for_outcome(client, name, submission, timeout_in_ms))

    return outcomes
