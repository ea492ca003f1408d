"""Rewrite relative Markdown link targets to point at compiled HTML pages."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Callable, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

from .errors import InvalidPathError, LinkResolutionWarning
from .paths import is_markdown_path, normalize_relative, parent_dir, relative_href, to_output_path

logger = logging.getLogger(__name__)

# link text may wrap onto the next line but never across a blank line
_TEXT_CHAR = r"(?:[^\[\]\\\n]|\\.|\n(?![ \t]*\r?\n))"
_LINK_TOKEN = re.compile(
    # `code spans` are copied verbatim
    r"(?P<code>(?P<ticks>`+)(?:(?!\n[ \t]*\r?\n)[\s\S])*?(?<!`)(?P=ticks)(?!`))"
    # [label]: target "title"
    r"|(?P<ref>^ {0,3}\[(?:[^\[\]\\\n]|\\.)+\]:[ \t]*)(?P<ref_target><[^<>\n]*>|\S+)"
    # [text](target "title") and ![alt](<target>); one level of nested brackets in text
    r"|(?P<head>!?\[(?:" + _TEXT_CHAR + r"|\[" + _TEXT_CHAR + r"*\])*\]\(\s*)"
    r"(?P<target><[^<>\n]*>|[^\s()<>]+)"
    r"(?P<tail>(?:\s+(?:\"[^\"\n]*\"|'[^'\n]*'|\([^()\n]*\)))?\s*\))",
    re.MULTILINE,
)
_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_INDENTED = re.compile(r"^(?: {4}|\t)")
_LIST_ITEM = re.compile(r"^[ \t]*(?:[-*+]|\d+[.)])[ \t]")

ExistsFn = Callable[[str], bool]

def _split_target(target: str) -> Tuple[str, str]:
    """Split a link target into (path, suffix) where suffix is '?query#fragment'."""
    cut = len(target)
    for marker in ("?", "#"):
        idx = target.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    return target[:cut], target[cut:]


def is_rewrite_candidate(target: str) -> bool:
    """True for relative, in-site targets (no scheme, no '//', no '/', not a fragment)."""
    if not target or target.startswith(("#", "/", "?")):
        return False
    if urlsplit(target).scheme:
        return False
    return True


def rewrite_target(
    document_src_path: str,
    target: str,
    exists: Optional[ExistsFn] = None,
    warnings: Optional[List[LinkResolutionWarning]] = None,
) -> str:
    """Return the rewritten form of a single link target."""
    bracketed = target.startswith("<") and target.endswith(">")
    raw = target[1:-1] if bracketed else target
    if not is_rewrite_candidate(raw):
        return target

    path_part, suffix = _split_target(raw)
    doc_dir = parent_dir(document_src_path)
    joined = posixpath.normpath(posixpath.join(doc_dir, unquote(path_part)))
    try:
        resolved = normalize_relative(joined)
    except InvalidPathError:
        _warn(warnings, document_src_path, raw, "resolves outside the source tree")
        return target

    if exists is not None and not exists(resolved):
        _warn(warnings, document_src_path, raw, "points at a file that does not exist")

    if not is_markdown_path(path_part):
        return target

    # keep the author's percent-escapes in the emitted href
    encoded = posixpath.normpath(posixpath.join(doc_dir, path_part))
    rewritten = relative_href(to_output_path(encoded), doc_dir) + suffix
    return f"<{rewritten}>" if bracketed else rewritten


def _warn(
    warnings: Optional[List[LinkResolutionWarning]], source: str, target: str, reason: str
) -> None:
    warning = LinkResolutionWarning(source=source, target=target, reason=reason)
    logger.warning("%s", warning)
    if warnings is not None:
        warnings.append(warning)


def rewrite_links(
    document_src_path: str,
    markdown_text: str,
    exists: Optional[ExistsFn] = None,
    warnings: Optional[List[LinkResolutionWarning]] = None,
) -> str:
    """Rewrite link and image targets in a Markdown document.

    - Targets with a Markdown extension are mapped to their .html output, relative to
      the document's own directory.
    - Other relative targets (images, downloads) are returned unchanged.
    - External URLs, root-absolute paths and fragments are never touched.
    - Code blocks (fenced or indented) and `code spans` are copied verbatim.
    - Link text may wrap across lines within a paragraph.

    The transform is idempotent: rewritten targets end in .html and are left alone on
    a second pass.
    """
    document_src_path = normalize_relative(document_src_path)

    def _repl(match: re.Match[str]) -> str:
        if match.group("code") is not None:
            return match.group(0)
        if match.group("ref") is not None:
            new_target = rewrite_target(document_src_path, match.group("ref_target"), exists, warnings)
            return match.group("ref") + new_target
        new_target = rewrite_target(document_src_path, match.group("target"), exists, warnings)
        return match.group("head") + new_target + match.group("tail")

    return "".join(
        block if is_code else _LINK_TOKEN.sub(_repl, block)
        for is_code, block in split_code_blocks(markdown_text)
    )


def split_code_blocks(markdown_text: str) -> List[Tuple[bool, str]]:
    """Split text into (is_code, block) runs of fenced or indented code and prose.

    An indented line opens a code block only after a blank line whose preceding text
    was neither indented nor a list item; otherwise it is list or paragraph content.
    """
    blocks: List[Tuple[bool, str]] = []
    lines: List[str] = []
    current = False

    def emit(line: str, is_code: bool) -> None:
        nonlocal lines, current
        if lines and is_code != current:
            blocks.append((current, "".join(lines)))
            lines = []
        current = is_code
        lines.append(line)

    fence: Optional[str] = None
    indented = False
    after_blank = True
    last_text = ""
    for line in markdown_text.splitlines(keepends=True):
        blank = not line.strip()
        opener = _FENCE.match(line)
        if fence is not None:
            if opener and opener.group(1)[0] == fence[0] and len(opener.group(1)) >= len(fence):
                fence = None
            emit(line, True)
        elif indented and (blank or _INDENTED.match(line)):
            emit(line, True)
        elif opener:
            indented = False
            fence = opener.group(1)
            emit(line, True)
        elif (
            not blank
            and _INDENTED.match(line)
            and after_blank
            and not _INDENTED.match(last_text)
            and not _LIST_ITEM.match(last_text)
        ):
            indented = True
            emit(line, True)
        else:
            indented = False
            emit(line, False)
            if not blank:
                last_text = line
        after_blank = blank
    if lines:
        blocks.append((current, "".join(lines)))
    return blocks
