"""
Simple HTTP server to preview the generated site.
"""

from __future__ import annotations

import functools
import http.server
import logging
import webbrowser
from pathlib import Path
from typing import Union

from .errors import ConfigError

logger = logging.getLogger(__name__)


def make_server(site_dir: Union[str, Path], port: int = 8000, host: str = "") -> http.server.ThreadingHTTPServer:
    """Bind a static file server over `site_dir` without changing the working directory."""
    site_path = Path(site_dir)
    if not site_path.is_dir():
        raise ConfigError(f"Site directory '{site_dir}' doesn't exist. Build the site first.")
    handler = functools.partial(http.server.SimpleHTTPRequestHandler, directory=str(site_path))
    return http.server.ThreadingHTTPServer((host, port), handler)


def serve_site(site_dir: Union[str, Path] = "out", port: int = 8000, open_browser: bool = True) -> None:
    with make_server(site_dir, port) as httpd:
        url = f"http://localhost:{httpd.server_address[1]}"
        print(f"Serving {site_dir} at {url}")
        print("Press Ctrl+C to stop")

        if open_browser:
            webbrowser.open(url)

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped.")
