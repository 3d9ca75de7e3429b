"""Response schemas for the indexer control endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from meilidown.models.indexed_file import IndexingCycleReport


class IndexerStatus(BaseModel):
    """State of the background indexing loop."""

    running: bool = Field(description="Whether the loop task is alive")
    stopping: bool = Field(default=False, description="Whether a stop was requested")
    interactive: bool = Field(description="Cycles wait for a manual run request")
    interval_minutes: float = Field(ge=0)
    cycles_completed: int = Field(ge=0)
    last_cycle: Optional[IndexingCycleReport] = None


class RunRequestResponse(BaseModel):
    """Acknowledgement of a manual run request."""

    requested: bool = True
    detail: str = "Indexing cycle requested"
