"""Tests for rewriting relative image references to file API URLs."""

import pytest

from meilidown.services.image_links import image_location, parent_directory, rewrite_image_links
from meilidown.services.markdown_normalizer import MarkdownNormalizer
from tests.fakes import make_file

TEMPLATE = "https://cdn.example/{0}"


@pytest.fixture(scope="module")
def normalizer():
    return MarkdownNormalizer()


def _rewrite(normalizer, text, relative_path="docs/guide.md"):
    document = normalizer.parse(text)
    count = rewrite_image_links(document, make_file(relative_path), TEMPLATE)
    return document, count


class TestImageLocation:
    """Directory computation always uses ``/``."""

    def test_nested_file(self):
        assert image_location("docs/guide.md", "img/pic.png") == "docs/img/pic.png"

    def test_root_file(self):
        assert image_location("README.md", "pic.png") == "pic.png"

    def test_backslash_separators(self):
        assert parent_directory("docs\\sub\\page.md") == "docs/sub"

    def test_repeated_separators(self):
        assert parent_directory("docs//sub///page.md") == "docs/sub"


class TestRewriteImageLinks:
    """Image targets become absolute, plain links stay untouched."""

    def test_inline_image_rewritten(self, normalizer):
        document, count = _rewrite(normalizer, "![alt](img/pic.png)")
        result = normalizer.render(document)

        assert count == 1
        assert "https://cdn.example/docs%2Fimg%2Fpic.png" in result
        assert "img/pic.png" not in result

    def test_target_matches_template_for_every_image(self, normalizer):
        document, count = _rewrite(
            normalizer, "![a](one.png) text ![b](../shared/two.png)", "guides/setup/install.md"
        )
        sources = [n.attrGet("src") for n in document.root.walk() if n.type == "image"]

        assert count == 2
        assert sources == [
            "https://cdn.example/guides%2Fsetup%2Fone.png",
            "https://cdn.example/guides%2Fsetup%2F..%2Fshared%2Ftwo.png",
        ]

    def test_reference_image_definition_cleared(self, normalizer):
        text = "![logo][logo]\n\n[logo]: images/logo.png\n"
        document, count = _rewrite(normalizer, text)
        image = next(n for n in document.root.walk() if n.type == "image")

        assert count == 1
        assert "label" not in image.meta
        assert document.env["references"]["LOGO"]["href"] == ""
        result = normalizer.render(document)
        assert "https://cdn.example/docs%2Fimages%2Flogo.png" in result
        assert "images/logo.png" not in result

    def test_plain_links_untouched(self, normalizer):
        document, count = _rewrite(normalizer, "[see](img/pic.png)")

        assert count == 0
        assert normalizer.render(document) == "see (img/pic.png)\n"

    def test_encoded_source_not_double_encoded(self, normalizer):
        document, _ = _rewrite(normalizer, "![x](my%20pic.png)")
        image = next(n for n in document.root.walk() if n.type == "image")

        assert image.attrGet("src") == "https://cdn.example/docs%2Fmy%20pic.png"

    def test_image_inside_link(self, normalizer):
        document, count = _rewrite(normalizer, "[![badge](badge.svg)](https://ci.example)")

        assert count == 1
        assert normalizer.render(document) == (
            "badge (https://cdn.example/docs%2Fbadge.svg) (https://ci.example)\n"
        )
