"""Tests for site configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from mdmake.config import PageChrome, SiteConfig, load_chrome
from mdmake.errors import ConfigError


class TestResolve:
    """Tests for SiteConfig.resolve."""

    def test_defaults_to_src_and_out(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        config = SiteConfig.resolve()
        assert config.input_dir == (tmp_path / "src").resolve()
        assert config.output_dir == (tmp_path / "out").resolve()

    def test_detects_chrome_files_at_input_root(self, config: SiteConfig) -> None:
        assert config.stylesheet == config.input_dir / "style.css"
        assert config.header == config.input_dir / "header.html"
        assert config.footer == config.input_dir / "footer.html"

    def test_no_chrome_files(self, bare_config: SiteConfig) -> None:
        assert bare_config.chrome_files == []

    def test_explicit_paths_win(self, site: Path, tmp_path: Path) -> None:
        footer = tmp_path / "custom_footer.html"
        footer.write_text("<footer>custom</footer>")
        config = SiteConfig.resolve(input_dir=site, output_dir=tmp_path / "out", footer=footer)
        assert config.footer == footer.resolve()
        assert config.header == config.input_dir / "header.html"

    def test_explicit_missing_file_is_an_error(self, site: Path, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            SiteConfig.resolve(input_dir=site, output_dir=tmp_path / "out", header=tmp_path / "nope.html")

    def test_config_is_immutable(self, config: SiteConfig) -> None:
        with pytest.raises(Exception):
            config.output_dir = Path("/elsewhere")  # type: ignore[misc]

    def test_relative_source(self, config: SiteConfig, tmp_path: Path) -> None:
        assert config.relative_source(config.input_dir / "food" / "a.md") == "food/a.md"
        assert config.relative_source(tmp_path / "other.md") is None


class TestLoadChrome:
    """Tests for load_chrome."""

    def test_reads_header_and_footer(self, config: SiteConfig) -> None:
        chrome = load_chrome(config)
        assert chrome == PageChrome(has_stylesheet=True, header="<nav>Home</nav>", footer="<p>End</p>")

    def test_deleted_file_is_treated_as_absent(self, config: SiteConfig) -> None:
        config.header.unlink()
        chrome = load_chrome(config)
        assert chrome.header is None
        assert chrome.footer == "<p>End</p>"

    def test_fingerprint_tracks_content(self) -> None:
        a = PageChrome(header="<nav>A</nav>")
        b = PageChrome(header="<nav>B</nav>")
        assert a.fingerprint == PageChrome(header="<nav>A</nav>").fingerprint
        assert a.fingerprint != b.fingerprint
