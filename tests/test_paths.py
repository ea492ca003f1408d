"""Tests for the source/output path mapping."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from mdmake.errors import InvalidPathError
from mdmake.paths import (
    is_markdown_path,
    normalize_relative,
    relative_href,
    to_output_path,
    to_source_candidates,
)


class TestToOutputPath:
    """Tests for to_output_path."""

    @pytest.mark.parametrize(
        "src",
        ["index.md", "food/fried_rice.md", "a/b/c/deep.md", "Notes/README.MD", "x/y.markdown"],
    )
    def test_markdown_maps_to_html_keeping_directories(self, src: str) -> None:
        """Markdown sources end in .html and keep every directory segment."""
        out = to_output_path(src)
        assert out.endswith(".html")
        assert PurePosixPath(out).parent == PurePosixPath(src).parent
        assert PurePosixPath(out).stem == PurePosixPath(src).stem

    def test_assets_map_to_themselves(self) -> None:
        """Non-Markdown files keep their path unchanged."""
        assert to_output_path("img/cat.png") == "img/cat.png"
        assert to_output_path("docs/report.pdf") == "docs/report.pdf"

    def test_accepts_pure_paths_and_dot_segments(self) -> None:
        """PurePath input and './' segments are normalized."""
        assert to_output_path(PurePosixPath("food") / "rice.md") == "food/rice.html"
        assert to_output_path("./food/./rice.md") == "food/rice.html"

    @pytest.mark.parametrize("bad", ["../escape.md", "a/../../b.md", "food/../x.md", "/etc/passwd.md"])
    def test_rejects_paths_escaping_the_root(self, bad: str) -> None:
        """Traversal and absolute paths raise InvalidPathError."""
        with pytest.raises(InvalidPathError):
            to_output_path(bad)

    def test_deterministic(self) -> None:
        """Same input gives the same output."""
        assert to_output_path("a/b.md") == to_output_path("a/b.md")


class TestReverseMapping:
    """Tests for to_source_candidates."""

    def test_html_maps_back_to_markdown_sources(self) -> None:
        """An .html output could come from .md, .markdown or a copied .html asset."""
        assert to_source_candidates("food/rice.html") == [
            "food/rice.md",
            "food/rice.markdown",
            "food/rice.html",
        ]

    def test_assets_map_back_to_themselves(self) -> None:
        assert to_source_candidates("img/cat.png") == ["img/cat.png"]


class TestHelpers:
    """Tests for the small path helpers."""

    def test_is_markdown_path_is_case_insensitive(self) -> None:
        assert is_markdown_path("A.MD")
        assert is_markdown_path("b.Markdown")
        assert not is_markdown_path("c.html")

    def test_normalize_relative_uses_forward_slashes(self) -> None:
        assert normalize_relative("a\\b\\c.md") == "a/b/c.md"

    @pytest.mark.parametrize(
        "from_dir,expected",
        [("", "style.css"), ("food", "../style.css"), ("food/asia", "../../style.css")],
    )
    def test_relative_href_climbs_per_directory(self, from_dir: str, expected: str) -> None:
        """Href to a root file climbs one level per directory."""
        assert relative_href("style.css", from_dir) == expected
