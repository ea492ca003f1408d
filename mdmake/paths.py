"""Path mapping between the source tree and the output tree.

All paths handled here are relative to their root and slash separated. Nothing in this
module touches the file system.
"""

from __future__ import annotations

import posixpath
from pathlib import PurePath, PurePosixPath
from typing import List, Union

from .errors import InvalidPathError

MARKDOWN_SUFFIXES = (".md", ".markdown")
HTML_SUFFIX = ".html"

PathLike = Union[str, PurePath]


def is_markdown_path(path: PathLike) -> bool:
    return PurePosixPath(str(path).replace("\\", "/")).suffix.lower() in MARKDOWN_SUFFIXES


def normalize_relative(path: PathLike) -> str:
    """Return `path` as a clean slash-separated relative path.

    Raises InvalidPathError for absolute paths and for any '..' component, so a
    mapped path can never point outside its root.
    """
    if isinstance(path, PurePath):
        parts = list(path.parts)
        absolute = path.is_absolute() or bool(path.anchor)
    else:
        text = path.replace("\\", "/")
        absolute = text.startswith("/")
        parts = text.split("/")
    if absolute:
        raise InvalidPathError(f"path must be relative to the source root: {path}")
    cleaned = [p for p in parts if p not in ("", ".")]
    if ".." in cleaned:
        raise InvalidPathError(f"path escapes the source root: {path}")
    return "/".join(cleaned)


def to_output_path(src_relative_path: PathLike) -> str:
    """Map a source-relative path to its destination-relative path.

    Markdown files get the .html extension; everything else maps to itself.
    """
    rel = normalize_relative(src_relative_path)
    if not rel:
        return rel
    if is_markdown_path(rel):
        return posixpath.splitext(rel)[0] + HTML_SUFFIX
    return rel


def to_source_candidates(dst_relative_path: PathLike) -> List[str]:
    """Reverse of to_output_path: every source path that could produce this output."""
    rel = normalize_relative(dst_relative_path)
    stem, suffix = posixpath.splitext(rel)
    if suffix.lower() == HTML_SUFFIX:
        return [stem + s for s in MARKDOWN_SUFFIXES] + [rel]
    return [rel]


def parent_dir(relative_path: str) -> str:
    """Containing directory of a root-relative path ('' for the root itself)."""
    return posixpath.dirname(relative_path)


def relative_href(target: str, from_dir: str) -> str:
    """Href from `from_dir` to `target`, both relative to the same root."""
    return posixpath.relpath(target, start=from_dir or ".")
