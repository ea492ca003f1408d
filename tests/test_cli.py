"""Tests for the command-line front end and preview server."""

from __future__ import annotations

from pathlib import Path

import pytest

from mdmake import cli
from mdmake.cli import build_parser, main
from mdmake.errors import ConfigError
from mdmake.serve import make_server
from mdmake.watch import DEFAULT_DEBOUNCE_SECONDS


class TestMain:
    """Tests for mdmake.cli.main."""

    def test_build_writes_the_site(self, site: Path, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        out = tmp_path / "site"
        assert main(["-i", str(site), "-o", str(out)]) == 0
        assert (out / "index.html").is_file()
        assert (out / "style.css").is_file()
        printed = capsys.readouterr().out
        assert "Site generated at:" in printed
        assert "4 page(s) rendered" in printed

    def test_explicit_build_subcommand(self, site: Path, tmp_path: Path) -> None:
        out = tmp_path / "site"
        assert main(["-q", "-i", str(site), "-o", str(out), "build"]) == 0
        assert (out / "food" / "asia" / "ramen.html").is_file()

    def test_missing_input_exits_with_message(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["-i", str(tmp_path / "missing"), "-o", str(tmp_path / "out")])
        assert "error:" in str(excinfo.value.code)
        assert not (tmp_path / "out").exists()

    def test_output_inside_input_exits(self, site: Path) -> None:
        with pytest.raises(SystemExit):
            main(["-i", str(site), "-o", str(site / "out")])
        assert not (site / "out").exists()

    def test_document_errors_give_nonzero_status(self, site: Path, tmp_path: Path) -> None:
        (site / "bad.md").write_bytes(b"\xff\xfe")
        assert main(["-q", "-i", str(site), "-o", str(tmp_path / "out")]) == 1

    def test_unreadable_header_exits_with_message(self, site: Path, tmp_path: Path) -> None:
        """A header that is not UTF-8 ends the run with a message, not a traceback."""
        (site / "header.html").write_bytes(b"\xff\xfe<nav>")
        with pytest.raises(SystemExit) as excinfo:
            main(["-q", "-i", str(site), "-o", str(tmp_path / "out")])
        message = str(excinfo.value.code)
        assert message.startswith("error:")
        assert "header.html" in message

    def test_watch_flag_runs_watch_mode(self, site: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(cli, "watch", lambda config, debounce: calls.append(debounce))
        assert main(["-q", "-i", str(site), "-o", str(tmp_path / "out"), "-w"]) == 0
        assert calls == [DEFAULT_DEBOUNCE_SECONDS]

    def test_watch_command_passes_debounce(self, site: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(cli, "watch", lambda config, debounce: calls.append(debounce))
        assert main(["-q", "-i", str(site), "-o", str(tmp_path / "out"), "w", "--debounce", "250"]) == 0
        assert calls == [0.25]


class TestParser:
    def test_watch_options(self) -> None:
        args = build_parser().parse_args(["watch", "--debounce", "250"])
        assert args.command == "watch"
        assert args.debounce == 250

    def test_watch_alias(self) -> None:
        args = build_parser().parse_args(["w"])
        assert args.command == "w"

    def test_watch_short_flag(self) -> None:
        args = build_parser().parse_args(["-w"])
        assert args.watch
        assert args.command is None
        assert not build_parser().parse_args([]).watch

    def test_serve_options(self) -> None:
        args = build_parser().parse_args(["-o", "public", "serve", "--port", "9000", "--no-browser"])
        assert args.output == Path("public")
        assert args.port == 9000
        assert args.no_browser


class TestServe:
    def test_missing_site_dir(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            make_server(tmp_path / "missing")

    def test_binds_to_existing_dir(self, tmp_path: Path) -> None:
        server = make_server(tmp_path, port=0, host="127.0.0.1")
        try:
            assert server.server_address[1] > 0
        finally:
            server.server_close()
