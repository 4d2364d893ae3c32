"""File access seam.

Parsing, aggregation and validation never touch the filesystem directly; they
go through a `FileStore` keyed by POSIX-style identifiers relative to a root.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol

from loguru import logger


class FileStore(Protocol):
    def read_text(self, identifier: str) -> str: ...

    def write_text(self, identifier: str, text: str) -> None: ...

    def exists(self, identifier: str) -> bool: ...

    def list_files(self, directory: str, *, suffix: str = ".md") -> list[str]: ...


def _normalize(identifier: str) -> str:
    text = identifier.replace("\\", "/")
    return PurePosixPath(text).as_posix() if text else "."


@dataclass(frozen=True)
class DiskFileStore:
    root: Path

    def path_for(self, identifier: str) -> Path:
        return self.root / _normalize(identifier)

    def read_text(self, identifier: str) -> str:
        return self.path_for(identifier).read_text(encoding="utf-8")

    def write_text(self, identifier: str, text: str) -> None:
        target = self.path_for(identifier)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(text)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"wrote {target} ({len(text)} chars)")

    def exists(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()

    def list_files(self, directory: str, *, suffix: str = ".md") -> list[str]:
        base = self.path_for(directory)
        if not base.is_dir():
            return []
        prefix = _normalize(directory)
        return sorted(
            f"{prefix}/{entry.name}" if prefix != "." else entry.name
            for entry in base.iterdir()
            if entry.is_file() and entry.name.endswith(suffix)
        )


@dataclass
class MemoryFileStore:
    """In-memory store; `writes` records every write in order."""

    files: dict[str, str] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)

    def read_text(self, identifier: str) -> str:
        key = _normalize(identifier)
        try:
            return self.files[key]
        except KeyError:
            raise FileNotFoundError(key) from None

    def write_text(self, identifier: str, text: str) -> None:
        key = _normalize(identifier)
        self.files[key] = text
        self.writes.append(key)

    def exists(self, identifier: str) -> bool:
        return _normalize(identifier) in self.files

    def list_files(self, directory: str, *, suffix: str = ".md") -> list[str]:
        prefix = _normalize(directory)
        matches = []
        for key in self.files:
            parent, _, name = key.rpartition("/")
            if (parent or ".") == prefix and name.endswith(suffix):
                matches.append(key)
        return sorted(matches)
