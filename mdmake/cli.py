"""Command-line entry point: ``mdmake [build|watch|serve]``."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .compiler import compile_all
from .config import DEFAULT_INPUT_DIR, DEFAULT_OUTPUT_DIR, SiteConfig
from .errors import MdmakeError
from .serve import serve_site
from .watch import DEFAULT_DEBOUNCE_SECONDS, watch

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdmake",
        description="Generate static websites from a directory of markdown files.",
    )
    parser.add_argument("-i", "--input", type=Path, default=None,
                        help=f"The project root of the markdown files (default: ./{DEFAULT_INPUT_DIR})")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help=f"The destination for the compiled webpage (default: ./{DEFAULT_OUTPUT_DIR})")
    parser.add_argument("--style", type=Path, default=None,
                        help="The CSS stylesheet to use for all HTML files (default: <input>/style.css if present)")
    parser.add_argument("--header", type=Path, default=None,
                        help="The HTML header to prepend to all HTML bodies (default: <input>/header.html if present)")
    parser.add_argument("--footer", type=Path, default=None,
                        help="The HTML footer to append to all HTML bodies (default: <input>/footer.html if present)")
    parser.add_argument("-w", "--watch", action="store_true",
                        help="Watch for changes and automatically recompile (same as the watch command)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every file processed")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("build", help="Compile the whole site once (default).")
    watch_parser = sub.add_parser("watch", aliases=["w"], help="Watch for changes and automatically recompile.")
    watch_parser.add_argument(
        "--debounce",
        type=int,
        default=int(DEFAULT_DEBOUNCE_SECONDS * 1000),
        help="Milliseconds to wait for a burst of changes to settle (default: %(default)s)",
    )
    serve_parser = sub.add_parser("serve", help="Serve the output directory over HTTP.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: %(default)s)")
    serve_parser.add_argument("--no-browser", action="store_true", help="Do not open a browser window")
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        config = SiteConfig.resolve(
            input_dir=args.input,
            output_dir=args.output,
            stylesheet=args.style,
            header=args.header,
            footer=args.footer,
        )
        if args.command == "serve":
            serve_site(config.output_dir, port=args.port, open_browser=not args.no_browser)
            return 0
        if args.watch or args.command in ("watch", "w"):
            debounce_ms = getattr(args, "debounce", DEFAULT_DEBOUNCE_SECONDS * 1000)
            watch(config, debounce=debounce_ms / 1000.0)
            return 0
        report = compile_all(config)
    except MdmakeError as exc:
        raise SystemExit(f"error: {exc}") from exc

    print(report.summary())
    print(f"Site generated at: {config.output_dir}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
