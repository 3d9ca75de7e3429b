"""Rewrite repository-relative image references to absolute file API URLs."""

from __future__ import annotations

from urllib.parse import quote, unquote

from meilidown.models.repository_file import RepositoryFile
from meilidown.services.markdown_normalizer import ParsedDocument

PATH_DELIMITER = "/"


def parent_directory(relative_path: str) -> str:
    """Directory part of a repository path, always ``/`` delimited."""
    segments = [s for s in relative_path.replace("\\", PATH_DELIMITER).split(PATH_DELIMITER) if s]
    return PATH_DELIMITER.join(segments[:-1])


def image_location(relative_path: str, url: str) -> str:
    """Repository-relative location of an image referenced from a file."""
    directory = parent_directory(relative_path)
    return f"{directory}{PATH_DELIMITER}{url}" if directory else url


def build_image_url(template: str, location: str) -> str:
    return template.format(quote(location, safe=""))


def rewrite_image_links(document: ParsedDocument, file: RepositoryFile, template: str) -> int:
    """Point every image in ``document`` at the file API, in place.

    Must run before the document is rendered. Reference-style images lose
    their label and the shared definition's href is cleared, so no relative
    path survives in the rendered text.

    Returns:
        Number of rewritten images
    """
    references = document.env.get("references", {})
    rewritten = 0

    for node in document.root.walk():
        if node.type != "image" or node.token is None:
            continue

        token = node.token
        # The parser percent-encodes destinations; decode to avoid double encoding.
        original = unquote(str(token.attrGet("src") or ""))
        token.attrSet("src", build_image_url(template, image_location(file.relative_path, original)))

        label = token.meta.pop("label", None)
        if label is not None and label in references:
            references[label]["href"] = ""
        rewritten += 1

    return rewritten
