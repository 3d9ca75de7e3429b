"""Background loop that re-indexes all repositories on a fixed schedule."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Iterable, Iterator, List, Optional

from meilidown.config.logger import app_logger, log_cycle
from meilidown.config.settings import Settings, settings
from meilidown.models.indexed_file import IndexedFile, IndexingCycleReport
from meilidown.models.repository_file import RepositoryFile
from meilidown.services.file_processor import process_files
from meilidown.services.index_sync import update_index
from meilidown.services.markdown_normalizer import MarkdownNormalizer
from meilidown.services.meilisearch_client import create_meilisearch_client
from meilidown.services.repositories import RepositorySource, gather_files, sources_from_settings


class IndexerWorker:
    """Runs scan → transform → sync cycles until stopped.

    Between cycles the worker waits for the configured interval, or, in
    interactive mode, for an explicit ``trigger()``. ``stop()`` ends the
    wait immediately and prevents any new cycle from starting; a cycle
    already in progress runs to completion.
    """

    def __init__(
        self,
        config: Settings = settings,
        *,
        sources: Optional[List[RepositorySource]] = None,
        normalizer: Optional[MarkdownNormalizer] = None,
        client_factory: Callable[[Settings], Any] = create_meilisearch_client,
    ):
        self.config = config
        self.sources = sources if sources is not None else sources_from_settings(config.REPOSITORIES)
        self.normalizer = normalizer or MarkdownNormalizer()
        self._client_factory = client_factory
        self._stopping = asyncio.Event()
        self._run_requested = asyncio.Event()
        self.running = False
        self.cycles_completed = 0
        self.last_report: Optional[IndexingCycleReport] = None

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def stop(self) -> None:
        self._stopping.set()

    def trigger(self) -> None:
        """Request a cycle now instead of at the end of the wait."""
        self._run_requested.set()

    async def run(self) -> None:
        self.running = True
        app_logger.info(f"Indexer started with {len(self.sources)} repository source(s)")
        try:
            while not self._stopping.is_set():
                await self.run_cycle()
                await self.wait_for_next_cycle()
        finally:
            self.running = False
            app_logger.info("Indexer stopped")

    async def run_cycle(self) -> IndexingCycleReport:
        """Run one full pass. Never raises; failures end up in the report."""
        report = IndexingCycleReport()
        start_time = time.perf_counter()

        try:
            documents = await asyncio.to_thread(self.collect_documents, report)
            report.documents_indexed = len(documents)
            async with self._client_factory(self.config) as client:
                report.operations = await update_index(
                    client,
                    documents,
                    index_name=self.config.MEILISEARCH_INDEX_NAME,
                    timeout_in_ms=self.config.MEILISEARCH_TASK_TIMEOUT_MS,
                    require_healthy=self.config.MEILISEARCH_REQUIRE_HEALTHY,
                    stopping=self._stopping,
                )
        except Exception as exc:
            app_logger.exception(f"Indexing cycle failed: {exc}")
            report.error = str(exc)

        report.elapsed_seconds = round(time.perf_counter() - start_time, 2)
        log_cycle(
            report.elapsed_seconds,
            documents=report.documents_indexed,
            failed_files=len(report.failed_files),
        )
        app_logger.info(
            f"Indexing cycle complete - files={report.files_found} "
            f"indexed={report.documents_indexed} failed_files={len(report.failed_files)} "
            f"failed_sources={len(report.failed_sources)}"
        )

        self.last_report = report
        self.cycles_completed += 1
        return report

    def collect_documents(self, report: IndexingCycleReport) -> List[IndexedFile]:
        """Scan all sources and convert their files. Blocking; runs in a thread."""
        files = gather_files(self.sources, self.config.INDEXER_FILE_GLOB, report.failed_sources)
        return list(
            process_files(
                self._count_files(files, report),
                self.normalizer,
                self.config.FILE_API_IMAGE_URL,
                report.failed_files,
            )
        )

    @staticmethod
    def _count_files(
        files: Iterable[RepositoryFile], report: IndexingCycleReport
    ) -> Iterator[RepositoryFile]:
        for file in files:
            report.files_found += 1
            yield file

    async def wait_for_next_cycle(self) -> None:
        """Wait for the interval, a manual trigger or a stop request."""
        if self._stopping.is_set():
            return

        if self.config.INDEXER_INTERACTIVE:
            timeout = None
            app_logger.info("Waiting for a manual run request")
        else:
            timeout = self.config.interval_seconds
            app_logger.info(f"Next indexing cycle in {self.config.INDEXER_INTERVAL_MINUTES:g} minute(s)")

        waiters = [
            asyncio.ensure_future(self._stopping.wait()),
            asyncio.ensure_future(self._run_requested.wait()),
        ]
        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        self._run_requested.clear()
