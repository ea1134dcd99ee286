"""Recursive file discovery (source of truth).

``walk_files(root, predicate=None, extension=".py")``

- Recurses depth-first below ``root``. Entries are visited in sorted name
  order; a directory is recursed into at the position where it appears.
- Directories are never filtered, only recursed into. Symlinked directories
  are followed like plain ones; a directory reached again while it is still
  being walked (a symlink cycle) raises ``OSError`` with ``errno.ELOOP``.
- For each regular file the configured ``extension`` is stripped from the
  name (when present) to obtain ``basename``. ``dirname`` is the directory of
  the file relative to ``root`` with ``/`` separators, ``""`` for files that
  sit directly under ``root``.
- The file is kept only when ``predicate(absolute_path, dirname, basename)``
  is true. ``predicate=None`` keeps everything.
- Any ``OSError`` (missing root, unreadable directory) propagates; callers
  never receive partial results.

``make_file_filter(file_filter, extension)`` normalizes the ``file_filter``
configuration value into a predicate:

- ``None``: keep files ending with ``extension`` whose basename does not start
  with ``_`` (skips ``__init__.py`` and private helpers).
- ``str`` or compiled regex: ``pattern.search(absolute_path)``.
- callable: returned unchanged.
"""

from __future__ import annotations

import errno
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set, Tuple

__all__ = ["FileInfo", "FilePredicate", "make_file_filter", "walk_files"]

FilePredicate = Callable[[str, str, str], bool]


@dataclass(frozen=True)
class FileInfo:
    """A discovered source file."""

    absolute_path: str
    dirname: str
    basename: str

    @property
    def relative_name(self) -> str:
        """``dirname/basename`` without extension (``"admin/dashboard"``)."""
        if self.dirname:
            return f"{self.dirname}/{self.basename}"
        return self.basename


def walk_files(
    root: str,
    predicate: Optional[FilePredicate] = None,
    extension: str = ".py",
) -> List[FileInfo]:
    """Return the files below ``root`` accepted by ``predicate``."""
    root = os.path.abspath(root)
    found: List[FileInfo] = []
    _walk(root, root, predicate, extension or "", found, set())
    return found


def _walk(
    root: str,
    directory: str,
    predicate: Optional[FilePredicate],
    extension: str,
    found: List[FileInfo],
    active: Set[Tuple[int, int]],
) -> None:
    stat = os.stat(directory)
    key = (stat.st_dev, stat.st_ino)
    if key in active:
        raise OSError(errno.ELOOP, "Directory cycle while walking controllers", directory)
    active.add(key)
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        for entry in entries:
            if entry.is_dir():
                _walk(root, entry.path, predicate, extension, found, active)
                continue
            _visit_file(root, directory, entry, predicate, extension, found)
    finally:
        active.discard(key)


def _visit_file(
    root: str,
    directory: str,
    entry: os.DirEntry,
    predicate: Optional[FilePredicate],
    extension: str,
    found: List[FileInfo],
) -> None:
    if not entry.is_file():
        return
    name = entry.name
    basename = name[: -len(extension)] if extension and name.endswith(extension) else name
    dirname = _relative_dirname(root, directory)
    absolute_path = os.path.abspath(entry.path)
    if predicate is not None and not predicate(absolute_path, dirname, basename):
        return
    found.append(FileInfo(absolute_path=absolute_path, dirname=dirname, basename=basename))


def _relative_dirname(root: str, directory: str) -> str:
    relative = os.path.relpath(directory, root)
    if relative == os.curdir:
        return ""
    return relative.replace(os.sep, "/")


def make_file_filter(file_filter: Any, extension: str = ".py") -> FilePredicate:
    """Build a ``(absolute_path, dirname, basename)`` predicate from configuration."""
    if file_filter is None:

        def default_filter(absolute_path: str, dirname: str, basename: str) -> bool:
            if extension and not absolute_path.endswith(extension):
                return False
            return not basename.startswith("_")

        return default_filter
    if isinstance(file_filter, str):
        file_filter = re.compile(file_filter)
    if isinstance(file_filter, re.Pattern):
        pattern = file_filter

        def pattern_filter(absolute_path: str, dirname: str, basename: str) -> bool:
            return pattern.search(absolute_path) is not None

        return pattern_filter
    if callable(file_filter):
        return file_filter
    raise TypeError(
        f"file_filter must be a callable, a regex or a pattern string, "
        f"got {type(file_filter).__name__}"
    )
