"""Exceptions and diagnostics for mdmake."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class MdmakeError(Exception):
    """Base exception for mdmake operations."""


class InvalidPathError(MdmakeError):
    """Path escapes the source root (absolute or contains '..')."""


class ConfigError(MdmakeError):
    """Site configuration cannot be used; raised before any file is written."""


class IoError(MdmakeError):
    """Reading a source entry or writing its output failed."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{path}{detail}")


@dataclass(frozen=True)
class LinkResolutionWarning:
    """A link target that could not be resolved inside the source tree."""

    source: str
    target: str
    reason: str

    def __str__(self) -> str:
        return f"{self.source}: link '{self.target}' {self.reason}"
