"""Site configuration: where to read from, where to write to, and the shared chrome."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .errors import ConfigError, IoError

logger = logging.getLogger(__name__)

DEFAULT_INPUT_DIR = Path("src")
DEFAULT_OUTPUT_DIR = Path("out")
DEFAULT_STYLESHEET = "style.css"
DEFAULT_HEADER = "header.html"
DEFAULT_FOOTER = "footer.html"

PathArg = Union[str, Path, None]


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


@dataclass(frozen=True)
class SiteConfig:
    """Resolved, immutable configuration for one run.

    All paths are absolute. `stylesheet`, `header` and `footer` are None when the site
    has none; `stylesheet_name` is where the stylesheet lands under `output_dir`.
    """

    input_dir: Path
    output_dir: Path
    stylesheet: Optional[Path] = None
    header: Optional[Path] = None
    footer: Optional[Path] = None
    stylesheet_name: str = DEFAULT_STYLESHEET

    @classmethod
    def resolve(
        cls,
        input_dir: PathArg = None,
        output_dir: PathArg = None,
        stylesheet: PathArg = None,
        header: PathArg = None,
        footer: PathArg = None,
    ) -> "SiteConfig":
        """Build a config from user-supplied paths.

        Missing input/output directories default to ./src and ./out. When no
        stylesheet, header or footer is given, style.css, header.html and footer.html
        at the input root are picked up if they exist.
        """
        input_root = Path(input_dir or DEFAULT_INPUT_DIR).expanduser().resolve()
        output_root = Path(output_dir or DEFAULT_OUTPUT_DIR).expanduser().resolve()

        def _pick(explicit: PathArg, default_name: str) -> Optional[Path]:
            if explicit:
                path = Path(explicit).expanduser().resolve()
                if not path.is_file():
                    raise ConfigError(f"configured file does not exist: {path}")
                return path
            candidate = input_root / default_name
            return candidate if candidate.is_file() else None

        return cls(
            input_dir=input_root,
            output_dir=output_root,
            stylesheet=_pick(stylesheet, DEFAULT_STYLESHEET),
            header=_pick(header, DEFAULT_HEADER),
            footer=_pick(footer, DEFAULT_FOOTER),
        )

    def validate(self) -> None:
        """Raise ConfigError if compiling with this config would be unsafe."""
        if not self.input_dir.is_dir():
            raise ConfigError(
                f"input directory does not exist or is not a directory: {self.input_dir}"
            )
        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise ConfigError(f"output path is an existing file: {self.output_dir}")
        if _is_within(self.output_dir, self.input_dir):
            raise ConfigError(
                f"output directory {self.output_dir} must not be inside input directory {self.input_dir}"
            )
        if _is_within(self.input_dir, self.output_dir):
            raise ConfigError(
                f"input directory {self.input_dir} must not be inside output directory {self.output_dir}"
            )

    @property
    def chrome_files(self) -> List[Path]:
        """Configured stylesheet/header/footer files, whichever are set."""
        return [p for p in (self.stylesheet, self.header, self.footer) if p is not None]

    def is_chrome_file(self, path: Path) -> bool:
        return path in self.chrome_files

    def relative_source(self, path: Path) -> Optional[str]:
        """Slash-separated path relative to input_dir, or None if outside it."""
        try:
            rel = path.relative_to(self.input_dir)
        except ValueError:
            return None
        return rel.as_posix()


@dataclass(frozen=True)
class PageChrome:
    """Shared page furniture read once per compile pass."""

    has_stylesheet: bool = False
    header: Optional[str] = None
    footer: Optional[str] = None

    @property
    def fingerprint(self) -> str:
        h = hashlib.sha256()
        for part in (str(self.has_stylesheet), self.header or "", self.footer or ""):
            h.update(part.encode("utf-8"))
            h.update(b"\0")
        return h.hexdigest()


def _read_text(path: Path) -> Optional[str]:
    if not path.exists():
        logger.warning("Configured file no longer exists, ignoring: %s", path)
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise IoError(str(path), exc) from exc


def load_chrome(config: SiteConfig) -> PageChrome:
    """Read header and footer text and note whether a stylesheet is present."""
    return PageChrome(
        has_stylesheet=config.stylesheet is not None and config.stylesheet.is_file(),
        header=_read_text(config.header) if config.header is not None else None,
        footer=_read_text(config.footer) if config.footer is not None else None,
    )
