"""Models for documents submitted to Meilisearch and per-cycle results."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ORDER = 0


class IndexedFile(BaseModel):
    """Document stored in the ``files`` index, keyed by ``uid``."""

    model_config = ConfigDict(frozen=True)

    uid: str
    name: str
    content: str = Field(description="Normalized plain text without markup")
    order: int = Field(default=DEFAULT_ORDER, description="Reserved for manual ordering")
    location: str


class IndexTaskOutcome(BaseModel):
    """Terminal result of one Meilisearch task."""

    name: str
    task_uid: Optional[int] = None
    status: str = Field(
        description="succeeded, failed, canceled, error (request failed) or skipped",
    )
    errors: List[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


class IndexingCycleReport(BaseModel):
    """Summary of one scan, transform and sync pass."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    files_found: int = Field(default=0, ge=0)
    documents_indexed: int = Field(default=0, ge=0)
    failed_files: List[str] = Field(default_factory=list)
    failed_sources: List[str] = Field(default_factory=list)
    operations: List[IndexTaskOutcome] = Field(default_factory=list)
    elapsed_seconds: float = Field(default=0.0, ge=0)
    error: Optional[str] = None
