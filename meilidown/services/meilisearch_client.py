"""Shared helpers for the Meilisearch client."""

from __future__ import annotations

from meilisearch_python_sdk import AsyncClient

from meilidown.config.logger import app_logger
from meilidown.config.settings import Settings, settings


def create_meilisearch_client(config: Settings = settings) -> AsyncClient:
    """Return a new async Meilisearch client.

    A client is created per indexing cycle and per health request and must
    be closed by the caller (``async with``), since its HTTP pool is bound
    to the running event loop.
    """
    if not config.MEILISEARCH_URL:
        raise ValueError("MEILISEARCH_URL must be configured")
    client = AsyncClient(config.MEILISEARCH_URL, config.MEILISEARCH_API_KEY or None)
    app_logger.debug(f"Meilisearch client created for {config.MEILISEARCH_URL}")
    return client
