"""mdmake: compile a directory of Markdown documents into a static website."""

from .compiler import CompileReport, RenderCache, SourceTree, compile_all, compile_subset, scan_tree
from .config import PageChrome, SiteConfig, load_chrome
from .errors import ConfigError, InvalidPathError, IoError, LinkResolutionWarning, MdmakeError
from .links import rewrite_links
from .paths import to_output_path
from .render import render_page

__version__ = "0.1.0"

__all__ = [
    "CompileReport",
    "ConfigError",
    "InvalidPathError",
    "IoError",
    "LinkResolutionWarning",
    "MdmakeError",
    "PageChrome",
    "RenderCache",
    "SiteConfig",
    "SourceTree",
    "compile_all",
    "compile_subset",
    "load_chrome",
    "render_page",
    "rewrite_links",
    "scan_tree",
    "to_output_path",
]
