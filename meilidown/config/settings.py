from string import Formatter
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meilidown.utils.errors import ConfigurationError

load_dotenv()


class RepositoryConfig(BaseModel):
    """One configured documentation repository."""

    path: str = Field(..., min_length=1, description="Local working copy directory")
    url: Optional[str] = Field(default=None, description="Git remote to clone/pull from")
    branch: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


def is_single_placeholder_template(template: str) -> bool:
    """True if ``template`` has exactly one positional ``{}``/``{0}`` field."""
    try:
        fields = [f for _, f, _, _ in Formatter().parse(template) if f is not None]
    except ValueError:
        return False
    return len(fields) == 1 and fields[0] in ("", "0")


class Settings(BaseSettings):
    """Base settings for the indexer."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "Meilidown Indexer"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "Indexes markdown documentation repositories into Meilisearch"

    # Meilisearch settings
    MEILISEARCH_URL: str = "http://localhost:7700"
    MEILISEARCH_API_KEY: str = ""
    MEILISEARCH_INDEX_NAME: str = "files"
    MEILISEARCH_TASK_TIMEOUT_MS: Optional[int] = Field(default=120_000, ge=1)
    MEILISEARCH_REQUIRE_HEALTHY: bool = False

    # File API settings
    FILE_API_IMAGE_URL: str = Field(
        default="",
        description="Image URL template, e.g. https://files.example/api/image?path={0}",
    )

    # Repository sources (JSON list in the environment)
    REPOSITORIES: List[RepositoryConfig] = Field(default_factory=list)

    # Indexer loop settings
    INDEXER_ENABLED: bool = True
    INDEXER_FILE_GLOB: str = "**.md"
    INDEXER_INTERVAL_MINUTES: float = Field(default=30, gt=0)
    INDEXER_INTERACTIVE: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOGS_DIR: str = "logs"

    @field_validator("FILE_API_IMAGE_URL")
    @classmethod
    def _check_image_template(cls, value: str) -> str:
        value = value.strip()
        if value and not is_single_placeholder_template(value):
            raise ValueError("FILE_API_IMAGE_URL must contain exactly one placeholder, e.g. {0}")
        return value

    @computed_field
    @property
    def interval_seconds(self) -> float:
        """Wait between two indexing cycles, in seconds."""
        return self.INDEXER_INTERVAL_MINUTES * 60


def ensure_indexer_settings(config: Settings) -> None:
    """Fail fast on settings the indexing loop cannot run without.

    Raises:
        ConfigurationError: If a required value is missing or malformed
    """
    if not config.MEILISEARCH_URL.strip():
        raise ConfigurationError("MEILISEARCH_URL must be configured")
    if not config.FILE_API_IMAGE_URL:
        raise ConfigurationError(
            "FILE_API_IMAGE_URL must be configured. "
            "Set it to the image endpoint with a single {0} placeholder in .env"
        )
    if not is_single_placeholder_template(config.FILE_API_IMAGE_URL):
        raise ConfigurationError("FILE_API_IMAGE_URL must contain exactly one placeholder")
    if not config.REPOSITORIES:
        raise ConfigurationError("REPOSITORIES must list at least one repository")


settings = Settings()
