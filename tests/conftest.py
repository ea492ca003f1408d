"""Test setup for mdmake."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mdmake.config import SiteConfig  # noqa: E402

SAMPLE_FILES = {
    "index.md": "# Recipes\n\n- [carbonara](food/spaghetti_carbonara.md)\n- [rice](food/fried_rice.md)\n",
    "food/spaghetti_carbonara.md": "# Spaghetti Carbonara\n\n![cat](../img/cat.png)\n\nBack to [home](../index.md).\n",
    "food/fried_rice.md": "# Fried Rice\n\nSee also [carbonara](spaghetti_carbonara.md#sauce).\n",
    "food/asia/ramen.md": "# Ramen\n\n[up](../fried_rice.md)\n",
    "img/cat.png": "\x89PNG fake image bytes",
    "style.css": "body { color: #222; }\n",
    "header.html": "<nav>Home</nav>",
    "footer.html": "<p>End</p>",
}


def write_tree(root: Path, files: dict) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A sample source tree under tmp_path/src."""
    src = tmp_path / "src"
    write_tree(src, SAMPLE_FILES)
    return src


@pytest.fixture
def config(site: Path, tmp_path: Path) -> SiteConfig:
    return SiteConfig.resolve(input_dir=site, output_dir=tmp_path / "out")


@pytest.fixture
def bare_config(tmp_path: Path) -> SiteConfig:
    """Config over a tree with no stylesheet, header or footer."""
    src = tmp_path / "bare"
    write_tree(src, {"index.md": "# Bare\n\n[a](docs/a.md)\n", "docs/a.md": "# A\n"})
    return SiteConfig.resolve(input_dir=src, output_dir=tmp_path / "bare_out")
