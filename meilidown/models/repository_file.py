"""Model describing one markdown file discovered in a repository."""

from pydantic import BaseModel, ConfigDict, Field


class RepositoryFile(BaseModel):
    """A discovered file. Read-only, lives for one indexing cycle."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., description="Stable document key derived from source and path")
    name: str = Field(..., description="File name without extension")
    relative_path: str = Field(..., description="Slash-delimited path inside the repository")
    absolute_path: str = Field(..., description="Local path used to read the file")
    location: str = Field(..., description="relative_path without extension, used for sorting")
