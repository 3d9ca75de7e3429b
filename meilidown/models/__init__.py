"""Models module - value objects passed through one indexing cycle."""

from meilidown.models.indexed_file import IndexedFile, IndexingCycleReport, IndexTaskOutcome
from meilidown.models.repository_file import RepositoryFile

__all__ = [
    "IndexedFile",
    "IndexingCycleReport",
    "IndexTaskOutcome",
    "RepositoryFile",
]
