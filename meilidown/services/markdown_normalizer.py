"""Markdown parsing and plain-text normalization for the search index.

Documents are parsed with markdown-it into a syntax tree, optionally
mutated (see ``image_links``), then rendered back to plain text: the
words of the document in reading order with markup syntax removed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import emoji
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.front_matter import front_matter_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

SMILEYS: Dict[str, str] = {
    ":)": "\U0001F603",
    ":-)": "\U0001F603",
    ":(": "\U0001F641",
    ":-(": "\U0001F641",
    ";)": "\U0001F609",
    ";-)": "\U0001F609",
    ":D": "\U0001F604",
    ":-D": "\U0001F604",
    ":P": "\U0001F61B",
    ":-P": "\U0001F61B",
    ":O": "\U0001F62E",
    ":-O": "\U0001F62E",
    ":|": "\U0001F610",
    "<3": "❤️",
}

_SMILEY_PATTERN = re.compile(
    r"(?<!\S)(" + "|".join(re.escape(s) for s in sorted(SMILEYS, key=len, reverse=True)) + r")(?!\S)"
)
_HTML_TAG_PATTERN = re.compile(r"<[^>]*>")

BLOCK_SEPARATOR = "\n\n"
TABLE_CELL_SEPARATOR = "\t"


@dataclass
class ParsedDocument:
    """Syntax tree plus the parser environment (reference definitions)."""

    root: SyntaxTreeNode
    env: dict = field(default_factory=dict)
    front_matter: Optional[str] = None


def build_markdown_parser() -> MarkdownIt:
    """Create the parser used for every document.

    CommonMark with tables, strikethrough, footnotes, definition lists,
    task lists and front matter. Linkify stays off so bare URLs are kept
    as written.
    """
    md = MarkdownIt("commonmark", {"linkify": False, "store_labels": True})
    md.enable(["table", "strikethrough"])
    md.use(front_matter_plugin)
    md.use(footnote_plugin)
    md.use(deflist_plugin)
    md.use(tasklists_plugin)
    return md


def expand_emoji(text: str) -> str:
    """Replace ``:shortcode:`` emoji and whitespace-delimited smileys."""
    text = emoji.emojize(text, language="alias")
    return _SMILEY_PATTERN.sub(lambda m: SMILEYS[m.group(1)], text)


class MarkdownNormalizer:
    """Parses markdown and renders the tree to canonical plain text.

    One instance is built per process and shared by every cycle; it holds
    no per-document state.
    """

    def __init__(self, parser: Optional[MarkdownIt] = None):
        self.parser = parser or build_markdown_parser()
        self._block_renderers: Dict[str, Callable[[SyntaxTreeNode], str]] = {
            "root": self._render_container,
            "paragraph": self._render_children_inline,
            "heading": self._render_children_inline,
            "inline": self._render_children_inline,
            "blockquote": self._render_container,
            "bullet_list": self._render_list,
            "ordered_list": self._render_list,
            "list_item": self._render_list_item,
            "fence": self._render_code,
            "code_block": self._render_code,
            "html_block": self._render_html,
            "table": self._render_table,
            "front_matter": self._skip,
            "hr": self._skip,
            "footnote_anchor": self._skip,
        }

    def parse(self, text: str) -> ParsedDocument:
        env: dict = {}
        tokens = self.parser.parse(text, env)
        root = SyntaxTreeNode(tokens)
        front_matter = next(
            (node.content for node in root.children if node.type == "front_matter"), None
        )
        return ParsedDocument(root=root, env=env, front_matter=front_matter)

    def render(self, document: ParsedDocument) -> str:
        text = self._render_block(document.root).strip()
        return f"{text}\n" if text else ""

    def normalize(self, text: str) -> str:
        return self.render(self.parse(text))

    # Block level

    def _render_block(self, node: SyntaxTreeNode) -> str:
        renderer = self._block_renderers.get(node.type)
        if renderer is not None:
            return renderer(node)
        if node.children:
            return self._render_container(node)
        return node.content.strip()

    def _render_container(self, node: SyntaxTreeNode) -> str:
        parts = [self._render_block(child) for child in node.children]
        return BLOCK_SEPARATOR.join(part for part in parts if part)

    def _render_children_inline(self, node: SyntaxTreeNode) -> str:
        return "".join(self._render_inline(child) for child in node.children).strip()

    def _render_list(self, node: SyntaxTreeNode) -> str:
        items = [self._render_block(child) for child in node.children]
        return "\n".join(item for item in items if item)

    def _render_list_item(self, node: SyntaxTreeNode) -> str:
        parts = [self._render_block(child) for child in node.children]
        return "\n".join(part for part in parts if part)

    def _render_code(self, node: SyntaxTreeNode) -> str:
        # Diagram fences (mermaid, plantuml, ...) are opaque text like any other code.
        return node.content.rstrip("\n")

    def _render_html(self, node: SyntaxTreeNode) -> str:
        return _HTML_TAG_PATTERN.sub("", node.content).strip()

    def _render_table(self, node: SyntaxTreeNode) -> str:
        rows: List[str] = []
        for row in (n for n in node.walk() if n.type == "tr"):
            cells = [self._render_children_inline(cell) for cell in row.children]
            rows.append(TABLE_CELL_SEPARATOR.join(cells).rstrip())
        return "\n".join(row for row in rows if row)

    def _skip(self, node: SyntaxTreeNode) -> str:
        return ""

    # Inline level

    def _render_inline(self, node: SyntaxTreeNode) -> str:
        kind = node.type
        if kind == "text":
            return expand_emoji(node.content)
        if kind == "code_inline":
            return node.content
        if kind in ("softbreak", "hardbreak"):
            return "\n"
        if kind == "html_inline":
            return ""
        if kind == "link":
            return self._render_link(node)
        if kind == "image":
            return self._render_image(node)
        if kind == "footnote_ref":
            return ""
        return "".join(self._render_inline(child) for child in node.children)

    def _render_link(self, node: SyntaxTreeNode) -> str:
        text = "".join(self._render_inline(child) for child in node.children)
        if node.markup == "autolink":
            return text
        href = str(node.attrGet("href") or "")
        if not href or href == text:
            return text
        return f"{text} ({href})" if text else href

    def _render_image(self, node: SyntaxTreeNode) -> str:
        alt = "".join(self._render_inline(child) for child in node.children).strip()
        src = str(node.attrGet("src") or "")
        if not src:
            return alt
        return f"{alt} ({src})" if alt else src
