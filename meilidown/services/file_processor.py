"""Turn discovered repository files into indexable documents."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from meilidown.config.logger import app_logger
from meilidown.models.indexed_file import DEFAULT_ORDER, IndexedFile
from meilidown.models.repository_file import RepositoryFile
from meilidown.services.image_links import rewrite_image_links
from meilidown.services.markdown_normalizer import MarkdownNormalizer


def read_markdown(path: str) -> str:
    """Read a markdown file, falling back to Latin-1 for legacy encodings."""
    file_path = Path(path)
    try:
        return file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return file_path.read_text(encoding="latin-1")


def build_indexed_file(file: RepositoryFile, content: str) -> IndexedFile:
    return IndexedFile(
        uid=file.uid,
        name=file.name,
        content=content,
        order=DEFAULT_ORDER,
        location=file.location,
    )


def convert_file(
    file: RepositoryFile,
    text: str,
    normalizer: MarkdownNormalizer,
    image_url_template: str,
) -> IndexedFile:
    """Parse, rewrite image links, normalize and wrap one file's markdown."""
    document = normalizer.parse(text)
    rewrite_image_links(document, file, image_url_template)
    return build_indexed_file(file, normalizer.render(document))


def process_files(
    files: Iterable[RepositoryFile],
    normalizer: MarkdownNormalizer,
    image_url_template: str,
    failed_files: Optional[List[str]] = None,
) -> Iterator[IndexedFile]:
    """Yield one document per readable file; unreadable files are skipped."""
    for file in files:
        app_logger.info(f"Processing {file.location}")

        try:
            text = read_markdown(file.absolute_path)
        except OSError as exc:
            app_logger.error(f"Cannot read {file.relative_path}: {exc}")
            if failed_files is not None:
                failed_files.append(file.relative_path)
            continue

        yield convert_file(file, text, normalizer, image_url_template)
