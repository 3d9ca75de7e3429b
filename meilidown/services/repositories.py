"""Repository sources: keep local working copies current and find markdown files."""

from __future__ import annotations

import fnmatch
import os
import uuid
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

import git
from git.exc import GitError

from meilidown.config.logger import app_logger
from meilidown.config.settings import RepositoryConfig
from meilidown.models.repository_file import RepositoryFile
from meilidown.utils.errors import RepositorySyncError

MARKDOWN_GLOB = "**.md"
SKIPPED_DIRECTORIES = {".git"}


def file_uid(source_location: str, relative_path: str) -> str:
    """Deterministic document key for a file of a given source."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{source_location}#{relative_path}"))


class RepositorySource:
    """A documentation repository backed by a local working copy.

    With a remote ``url`` the working copy is cloned on first update and
    pulled afterwards. Without one, ``path`` is treated as a plain local
    directory that is already current.
    """

    def __init__(self, config: RepositoryConfig):
        self.config = config
        self.path = Path(config.path).expanduser().resolve()

    def __repr__(self) -> str:
        return f"RepositorySource({self.location!r})"

    @property
    def location(self) -> str:
        return self.config.url or str(self.path)

    def has_working_copy(self) -> bool:
        return self.path.is_dir()

    def update(self) -> None:
        """Bring the working copy to the latest revision.

        Raises:
            RepositorySyncError: If cloning or pulling fails
        """
        if not self.config.url:
            if not self.has_working_copy():
                raise RepositorySyncError(self.location, "directory does not exist")
            return

        try:
            if (self.path / ".git").exists():
                remote = git.Repo(self.path).remote("origin")
                if self.config.branch:
                    remote.pull(self.config.branch)
                else:
                    remote.pull()
                app_logger.info(f"Pulled {self.location}")
            else:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                options = {"branch": self.config.branch} if self.config.branch else {}
                git.Repo.clone_from(self._authenticated_url(), self.path, **options)
                app_logger.info(f"Cloned {self.location} into {self.path}")
        except (GitError, OSError, ValueError) as exc:
            raise RepositorySyncError(self.location, self._redact(str(exc))) from exc

    def find_files(self, pattern: str = MARKDOWN_GLOB) -> Iterator[RepositoryFile]:
        """Yield files whose slash-delimited relative path matches ``pattern``."""
        for root, dirs, files in os.walk(self.path):
            dirs[:] = sorted(d for d in dirs if d not in SKIPPED_DIRECTORIES)
            for filename in sorted(files):
                full_path = Path(root) / filename
                relative_path = full_path.relative_to(self.path).as_posix()
                if fnmatch.fnmatch(relative_path, pattern):
                    yield self._describe(full_path, relative_path)

    def _describe(self, full_path: Path, relative_path: str) -> RepositoryFile:
        posix = PurePosixPath(relative_path)
        return RepositoryFile(
            uid=file_uid(self.location, relative_path),
            name=posix.stem,
            relative_path=relative_path,
            absolute_path=str(full_path),
            location=str(posix.with_suffix("")),
        )

    def _authenticated_url(self) -> str:
        url = self.config.url or ""
        if not self.config.username:
            return url
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https"):
            return url
        credentials = quote(self.config.username, safe="")
        if self.config.password:
            credentials += ":" + quote(self.config.password, safe="")
        netloc = f"{credentials}@{parts.hostname}"
        if parts.port:
            netloc += f":{parts.port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    def _redact(self, message: str) -> str:
        authenticated = self._authenticated_url()
        if authenticated and authenticated != self.config.url:
            message = message.replace(authenticated, self.location)
        return message


def sources_from_settings(configs: Iterable[RepositoryConfig]) -> List[RepositorySource]:
    return [RepositorySource(config) for config in configs]


def gather_files(
    sources: Iterable[RepositorySource],
    pattern: str = MARKDOWN_GLOB,
    failed_sources: Optional[List[str]] = None,
) -> Iterator[RepositoryFile]:
    """Update every source, then yield its matching files.

    A source that fails to update is indexed from its existing working copy
    when there is one, and skipped otherwise. Other sources are unaffected.
    """
    for source in sources:
        try:
            source.update()
        except RepositorySyncError as exc:
            if failed_sources is not None:
                failed_sources.append(source.location)
            if not source.has_working_copy():
                app_logger.error(f"{exc}; skipping source")
                continue
            app_logger.warning(f"{exc}; indexing existing working copy")

        yield from source.find_files(pattern)
