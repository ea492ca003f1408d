"""Watch the source tree and recompile what changed.

The coordinator is a small state machine (Idle -> Debouncing -> Compiling -> Idle)
draining a single queue, so at most one compile runs at a time. Events that arrive
while compiling wait for the next debounce cycle.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer

from .compiler import CompileReport, RenderCache, compile_all, compile_subset
from .config import SiteConfig
from .errors import IoError

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1
IDLE_POLL_SECONDS = 0.5


class ChangeKind(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


class WatchState(Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    COMPILING = "compiling"


@dataclass(frozen=True)
class ChangeEvent:
    """A change to one path; `path` is relative to the input dir unless `chrome`."""

    path: str
    kind: ChangeKind
    chrome: bool = False


CompileAllFn = Callable[..., CompileReport]
CompileSubsetFn = Callable[..., CompileReport]


class WatchCoordinator:
    """Debounces file-system events and hands change-sets to the compiler."""

    def __init__(
        self,
        config: SiteConfig,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        compile_all_fn: CompileAllFn = compile_all,
        compile_subset_fn: CompileSubsetFn = compile_subset,
        cache: Optional[RenderCache] = None,
        idle_poll: float = IDLE_POLL_SECONDS,
    ):
        self.config = config
        self.debounce = debounce
        self.idle_poll = idle_poll
        self.cache = cache if cache is not None else RenderCache()
        self._compile_all = compile_all_fn
        self._compile_subset = compile_subset_fn
        self._events: "queue.Queue[ChangeEvent]" = queue.Queue()
        self.state = WatchState.IDLE
        self.compiles = 0

    # -- ingestion --
    def _classify(self, path: Union[str, Path], kind: ChangeKind) -> Optional[ChangeEvent]:
        absolute = Path(os.path.abspath(os.fspath(path)))
        if self.config.is_chrome_file(absolute):
            return ChangeEvent(str(absolute), kind, chrome=True)
        try:
            absolute.relative_to(self.config.output_dir)
            return None
        except ValueError:
            pass
        rel = self.config.relative_source(absolute)
        if not rel or rel == ".":
            return None
        return ChangeEvent(rel, kind)

    def submit(self, path: Union[str, Path], kind: ChangeKind = ChangeKind.MODIFIED) -> bool:
        """Queue a change; returns False if the path is outside the source tree.

        Relative paths are taken relative to the input directory.
        """
        if not os.path.isabs(os.fspath(path)):
            path = self.config.input_dir / path
        event = self._classify(path, kind)
        if event is None:
            logger.debug("Discarding event outside the source tree: %s", path)
            return False
        self._events.put(event)
        return True

    # -- state machine --
    def _collect(self, first: ChangeEvent, stop: Optional[threading.Event]) -> Dict[str, ChangeEvent]:
        """Debouncing: gather events until the window passes with no new ones."""
        self.state = WatchState.DEBOUNCING
        pending: Dict[str, ChangeEvent] = {first.path: first}
        while stop is None or not stop.is_set():
            try:
                event = self._events.get(timeout=self.debounce)
            except queue.Empty:
                break
            pending[event.path] = event
        return pending

    def _compile(self, pending: Dict[str, ChangeEvent]) -> Optional[CompileReport]:
        self.state = WatchState.COMPILING
        self.compiles += 1
        try:
            if any(e.chrome for e in pending.values()):
                logger.info("Shared page chrome changed, recompiling everything")
                report = self._compile_all(self.config, cache=self.cache)
            else:
                paths: List[str] = list(pending)
                logger.info("Recompiling %d changed path(s)", len(paths))
                report = self._compile_subset(self.config, paths, cache=self.cache)
        except Exception:
            logger.exception("Compile failed; still watching")
            return None
        finally:
            self.state = WatchState.IDLE
        return report

    def run_cycle(self, stop: Optional[threading.Event] = None, timeout: Optional[float] = None) -> Optional[CompileReport]:
        """Wait for one burst of events and compile it.

        Returns None when nothing arrived within `timeout` or the compile failed.
        """
        try:
            first = self._events.get(timeout=self.idle_poll if timeout is None else timeout)
        except queue.Empty:
            return None
        pending = self._collect(first, stop)
        return self._compile(pending)

    def run(self, stop: threading.Event) -> None:
        """Process events until `stop` is set; a running compile always completes."""
        logger.info("Watching %s for changes", self.config.input_dir)
        while not stop.is_set():
            self.run_cycle(stop)
        logger.info("Stopped watching %s", self.config.input_dir)


# -- watchdog glue --
class WatchdogEventBridge(FileSystemEventHandler):
    """Feeds watchdog events into a WatchCoordinator."""

    def __init__(self, coordinator: WatchCoordinator):
        self.coordinator = coordinator

    def on_any_event(self, event: FileSystemEvent) -> None:
        src = os.fsdecode(event.src_path)
        if event.event_type == "moved" and isinstance(event, FileSystemMovedEvent):
            self.coordinator.submit(src, ChangeKind.REMOVED)
            self.coordinator.submit(os.fsdecode(event.dest_path), ChangeKind.RENAMED)
        elif event.event_type == "created":
            self.coordinator.submit(src, ChangeKind.CREATED)
        elif event.event_type == "deleted":
            self.coordinator.submit(src, ChangeKind.REMOVED)
        elif event.event_type == "modified" and not event.is_directory:
            self.coordinator.submit(src, ChangeKind.MODIFIED)


def _external_watch_dirs(config: SiteConfig) -> Iterable[Path]:
    """Directories holding configured chrome files outside the input tree."""
    seen = set()
    for path in config.chrome_files:
        if config.relative_source(path) is None and path.parent not in seen:
            seen.add(path.parent)
            yield path.parent


def watch(
    config: SiteConfig,
    debounce: float = DEFAULT_DEBOUNCE_SECONDS,
    stop: Optional[threading.Event] = None,
) -> None:
    """Compile everything once, then recompile on change until stopped or Ctrl+C."""
    coordinator = WatchCoordinator(config, debounce=debounce)
    try:
        report = compile_all(config, cache=coordinator.cache)
    except IoError as exc:
        # fixing the unreadable header or footer triggers a full pass
        logger.error("Initial build failed: %s", exc)
    else:
        print(report.summary())

    stop = stop or threading.Event()
    handler = WatchdogEventBridge(coordinator)
    observer = Observer()
    observer.schedule(handler, str(config.input_dir), recursive=True)
    for directory in _external_watch_dirs(config):
        observer.schedule(handler, str(directory), recursive=False)
    observer.start()
    try:
        coordinator.run(stop)
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join()
