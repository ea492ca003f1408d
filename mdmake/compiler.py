"""Compile a source tree of Markdown documents into a mirrored HTML tree."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .config import PageChrome, SiteConfig, load_chrome
from .errors import InvalidPathError, IoError, LinkResolutionWarning, MdmakeError
from .paths import is_markdown_path, normalize_relative, to_output_path
from .render import render_page

logger = logging.getLogger(__name__)


# -- data structures --
class EntryKind(Enum):
    DOCUMENT = "document"
    STYLESHEET = "stylesheet"
    HEADER = "header"
    FOOTER = "footer"
    DIRECTORY = "directory"
    OTHER_ASSET = "asset"


@dataclass(frozen=True)
class SourceEntry:
    relative_path: str
    kind: EntryKind
    path: Path


@dataclass(frozen=True)
class SourceTree:
    """Every entry found under the input directory for one pass, in walk order."""

    root: Path
    entries: Tuple[SourceEntry, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {e.relative_path: e for e in self.entries})

    def __iter__(self) -> Iterator[SourceEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, relative_path: object) -> bool:
        return relative_path in self._index  # type: ignore[attr-defined]

    def get(self, relative_path: str) -> Optional[SourceEntry]:
        return self._index.get(relative_path)  # type: ignore[attr-defined]

    def under(self, relative_dir: str) -> List[SourceEntry]:
        """Entries strictly below a directory."""
        prefix = relative_dir.rstrip("/") + "/"
        return [e for e in self.entries if e.relative_path.startswith(prefix)]

    @property
    def documents(self) -> List[SourceEntry]:
        return [e for e in self.entries if e.kind is EntryKind.DOCUMENT]


@dataclass
class CompileReport:
    """Outcome of one compile pass."""

    full: bool = False
    documents_rendered: int = 0
    assets_copied: int = 0
    outputs_removed: int = 0
    warnings: List[LinkResolutionWarning] = field(default_factory=list)
    errors: List[MdmakeError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def merge(self, other: "CompileReport") -> "CompileReport":
        self.full = self.full or other.full
        self.documents_rendered += other.documents_rendered
        self.assets_copied += other.assets_copied
        self.outputs_removed += other.outputs_removed
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)
        return self

    def summary(self) -> str:
        kind = "full" if self.full else "partial"
        return (
            f"{kind} pass: {self.documents_rendered} page(s) rendered, "
            f"{self.assets_copied} asset(s) copied, {self.outputs_removed} output(s) removed, "
            f"{len(self.warnings)} warning(s), {len(self.errors)} error(s)"
        )


class RenderCache:
    """Rendered pages keyed by (relative_path, content hash).

    Pages bake in the header, footer and stylesheet link, so the whole cache is
    dropped whenever the chrome fingerprint changes.
    """

    def __init__(self) -> None:
        self._pages: Dict[Tuple[str, str], Tuple[bytes, Tuple[LinkResolutionWarning, ...]]] = {}
        self._fingerprint: Optional[str] = None

    def __len__(self) -> int:
        return len(self._pages)

    def bind(self, chrome: PageChrome) -> None:
        fingerprint = chrome.fingerprint
        if fingerprint != self._fingerprint:
            if self._pages:
                logger.debug("Page chrome changed, dropping %d cached page(s)", len(self._pages))
            self._pages.clear()
            self._fingerprint = fingerprint

    @staticmethod
    def _key(relative_path: str, text: str) -> Tuple[str, str]:
        return relative_path, hashlib.sha256(text.encode("utf-8")).hexdigest()

    def get(self, relative_path: str, text: str) -> Optional[Tuple[bytes, Tuple[LinkResolutionWarning, ...]]]:
        return self._pages.get(self._key(relative_path, text))

    def put(self, relative_path: str, text: str, page: bytes, warnings: Iterable[LinkResolutionWarning]) -> None:
        self._pages[self._key(relative_path, text)] = (page, tuple(warnings))


# -- helpers: scanning --
def classify(path: Path, config: SiteConfig) -> EntryKind:
    if path.is_dir():
        return EntryKind.DIRECTORY
    if config.stylesheet is not None and path == config.stylesheet:
        return EntryKind.STYLESHEET
    if config.header is not None and path == config.header:
        return EntryKind.HEADER
    if config.footer is not None and path == config.footer:
        return EntryKind.FOOTER
    if is_markdown_path(path.name):
        return EntryKind.DOCUMENT
    return EntryKind.OTHER_ASSET


def scan_tree(config: SiteConfig) -> SourceTree:
    """Walk the input directory depth-first and classify every entry.

    Hidden files and directories (leading '.') are skipped.
    """
    input_root = config.input_dir
    entries: List[SourceEntry] = []
    for dirpath, dirnames, filenames in os.walk(input_root):
        current_dir = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for dname in dirnames:
            dpath = current_dir / dname
            entries.append(
                SourceEntry(dpath.relative_to(input_root).as_posix(), EntryKind.DIRECTORY, dpath)
            )
        for fname in sorted(filenames):
            if fname.startswith("."):
                continue
            fpath = current_dir / fname
            entries.append(SourceEntry(fpath.relative_to(input_root).as_posix(), classify(fpath, config), fpath))
    return SourceTree(root=input_root, entries=tuple(entries))


# -- helpers: writing --
def write_atomic(dest: Path, data: bytes) -> None:
    """Replace `dest` with `data` via a temporary file in the same directory."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.chmod(tmp, 0o644)
        os.replace(tmp, dest)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def copy_atomic(src: Path, dest: Path) -> None:
    """Copy `src` over `dest` without exposing a half-written file."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    os.close(fd)
    try:
        shutil.copy2(src, tmp)
        os.replace(tmp, dest)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def copy_stylesheet(config: SiteConfig, report: CompileReport) -> None:
    """Copy the stylesheet to its single fixed location under the output root."""
    if config.stylesheet is None or not config.stylesheet.is_file():
        return
    dest = config.output_dir / config.stylesheet_name
    try:
        copy_atomic(config.stylesheet, dest)
    except OSError as exc:
        _record_error(report, IoError(str(config.stylesheet), exc))
        return
    report.assets_copied += 1
    logger.debug("Copied stylesheet to %s", dest)


def shadows_stylesheet(config: SiteConfig, relative_path: str) -> bool:
    """True when an asset's output would land on the copied stylesheet."""
    return config.stylesheet is not None and to_output_path(relative_path) == config.stylesheet_name


def clear_output_dir(output_root: Path) -> None:
    """Remove and recreate the output directory."""
    if output_root.exists():
        shutil.rmtree(output_root)
    output_root.mkdir(parents=True, exist_ok=True)


def _record_error(report: CompileReport, error: MdmakeError) -> None:
    logger.error("%s", error)
    report.errors.append(error)


# -- compiling --
class _Pass:
    """State shared by the entries of one compile pass."""

    def __init__(self, config: SiteConfig, tree: SourceTree, chrome: PageChrome,
                 report: CompileReport, cache: Optional[RenderCache]):
        self.config = config
        self.tree = tree
        self.chrome = chrome
        self.report = report
        self.cache = cache
        if cache is not None:
            cache.bind(chrome)

    def process(self, entry: SourceEntry) -> None:
        try:
            if entry.kind is EntryKind.DOCUMENT:
                self._render_document(entry)
            elif entry.kind is EntryKind.OTHER_ASSET:
                if shadows_stylesheet(self.config, entry.relative_path):
                    logger.warning(
                        "Skipping %s: it would overwrite the stylesheet %s",
                        entry.relative_path,
                        self.config.stylesheet,
                    )
                    return
                copy_atomic(entry.path, self.config.output_dir / to_output_path(entry.relative_path))
                self.report.assets_copied += 1
                logger.debug("Copied %s", entry.relative_path)
            elif entry.kind is EntryKind.DIRECTORY:
                (self.config.output_dir / entry.relative_path).mkdir(parents=True, exist_ok=True)
            # stylesheet, header and footer are consumed as configuration
        except (OSError, UnicodeDecodeError) as exc:
            _record_error(self.report, IoError(entry.relative_path, exc))
        except MdmakeError as exc:
            _record_error(self.report, exc)

    def _render_document(self, entry: SourceEntry) -> None:
        text = entry.path.read_text(encoding="utf-8")
        cached = self.cache.get(entry.relative_path, text) if self.cache is not None else None
        if cached is not None:
            page, warnings = cached
            self.report.warnings.extend(warnings)
        else:
            warnings_list: List[LinkResolutionWarning] = []
            page = render_page(
                entry.relative_path,
                text,
                self.config,
                chrome=self.chrome,
                exists=self.tree.__contains__,
                warnings=warnings_list,
            )
            self.report.warnings.extend(warnings_list)
            if self.cache is not None:
                self.cache.put(entry.relative_path, text, page, warnings_list)
        write_atomic(self.config.output_dir / to_output_path(entry.relative_path), page)
        self.report.documents_rendered += 1
        logger.debug("Rendered %s", entry.relative_path)


def compile_all(config: SiteConfig, cache: Optional[RenderCache] = None) -> CompileReport:
    """Full pass: clear the output directory and rebuild every entry.

    Raises ConfigError before anything is written when the config is unusable.
    Failures on individual entries are collected in the report.
    """
    config.validate()
    tree = scan_tree(config)
    chrome = load_chrome(config)

    clear_output_dir(config.output_dir)
    report = CompileReport(full=True)
    compile_pass = _Pass(config, tree, chrome, report, cache)
    for entry in tree:
        compile_pass.process(entry)
    copy_stylesheet(config, report)

    logger.info("Compiled %s -> %s: %s", config.input_dir, config.output_dir, report.summary())
    return report


def _relative_change(config: SiteConfig, changed: Union[str, Path]) -> Tuple[Optional[str], bool]:
    """Return (source-relative path, is_chrome) for a changed path.

    Raises InvalidPathError for paths outside the source tree.
    """
    candidate = Path(changed)
    if candidate.is_absolute():
        absolute = Path(os.path.abspath(candidate))
        if config.is_chrome_file(absolute):
            return config.relative_source(absolute), True
        rel = config.relative_source(absolute)
        if rel is None:
            raise InvalidPathError(f"path is outside the source tree: {changed}")
        return rel, False
    rel = normalize_relative(str(changed))
    return rel, config.is_chrome_file(config.input_dir / rel)


def _remove_output(config: SiteConfig, relative_path: str, report: CompileReport) -> None:
    if shadows_stylesheet(config, relative_path):
        return
    target = config.output_dir / to_output_path(relative_path)
    try:
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
        else:
            return
    except OSError as exc:
        _record_error(report, IoError(relative_path, exc))
        return
    report.outputs_removed += 1
    logger.debug("Removed %s", target)


def compile_subset(
    config: SiteConfig,
    changed_paths: Iterable[Union[str, Path]],
    cache: Optional[RenderCache] = None,
) -> CompileReport:
    """Incremental pass over the given source paths.

    Existing documents are re-rendered, assets re-copied, and directories processed
    recursively. Paths that no longer exist have their outputs deleted. A change to
    the stylesheet, header or footer turns this into a full pass.
    """
    config.validate()
    report = CompileReport()
    relative: List[str] = []
    for changed in changed_paths:
        try:
            rel, is_chrome = _relative_change(config, changed)
        except InvalidPathError as exc:
            _record_error(report, exc)
            continue
        if is_chrome:
            logger.info("Shared page chrome changed (%s), recompiling everything", changed)
            return report.merge(compile_all(config, cache))
        if rel and rel not in relative:
            relative.append(rel)

    if not relative:
        return report

    tree = scan_tree(config)
    chrome = load_chrome(config)
    config.output_dir.mkdir(parents=True, exist_ok=True)
    compile_pass = _Pass(config, tree, chrome, report, cache)
    for rel in relative:
        entry = tree.get(rel)
        if entry is None:
            _remove_output(config, rel, report)
            continue
        compile_pass.process(entry)
        if entry.kind is EntryKind.DIRECTORY:
            for sub in tree.under(rel):
                compile_pass.process(sub)

    logger.info("Recompiled %d changed path(s): %s", len(relative), report.summary())
    return report
