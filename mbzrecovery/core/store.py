# SPDX-License-Identifier: GPL-3.0-or-later
"""
Backup source access for mbzRecovery.

A Moodle backup can be read either from the .mbz file itself (a gzip
compressed tar) or from a folder where it has already been extracted. Both
are exposed through the same read-only SourceStore interface, so the rest of
the toolkit never needs to know which one it was given.

Paths inside a store are always relative, "/"-separated strings such as
"activities/folder_12/folder.xml".

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

import os
import tarfile
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, List, Union

from .errors import SourceError

# File name endings recognized as compressed backup archives
ARCHIVE_SUFFIXES = (".mbz", ".tar.gz", ".tgz")


@dataclass(frozen=True)
class StoreEntry:
    """A single entry returned when listing a store directory."""

    name: str
    is_dir: bool


def normalize_store_path(path: str) -> str:
    """
    Normalize a store path to the "a/b/c" form.

    Leading "./" and "/" are dropped. Paths that climb out of the store
    with ".." are rejected with FileNotFoundError.
    """
    parts = []
    for part in PurePosixPath(path.replace("\\", "/")).parts:
        if part in ("/", "."):
            continue
        if part == "..":
            raise FileNotFoundError(f"Path escapes the backup: {path}")
        parts.append(part)
    return "/".join(parts)


class SourceStore(ABC):
    """Read-only hierarchical file store."""

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """
        Open a file for binary reading.

        Raises:
            FileNotFoundError: if no file exists at path
        """

    @abstractmethod
    def listdir(self, path: str) -> List[StoreEntry]:
        """
        List the entries directly below a directory, sorted by name.

        Raises:
            FileNotFoundError: if the directory does not exist
            NotADirectoryError: if path is a file
        """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether a file exists at path."""

    def close(self) -> None:
        """Release resources held by the store."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class DirectoryStore(SourceStore):
    """Store backed by an already-extracted backup folder."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        relative = normalize_store_path(path)
        return self.root / relative if relative else self.root

    def open(self, path: str) -> BinaryIO:
        return open(self._resolve(path), "rb")

    def listdir(self, path: str) -> List[StoreEntry]:
        with os.scandir(self._resolve(path)) as it:
            entries = [StoreEntry(entry.name, entry.is_dir()) for entry in it]
        return sorted(entries, key=lambda entry: entry.name)

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).is_file()
        except FileNotFoundError:
            return False

    def __repr__(self):
        return f"DirectoryStore({str(self.root)!r})"


class ArchiveStore(SourceStore):
    """
    Store backed by a gzip compressed tar archive (.mbz).

    The member table is read once when the store is opened. Directories
    that only exist implicitly through member paths are listed like real
    ones, since tar writers do not always emit directory entries.
    """

    def __init__(self, archive_path: Union[str, Path]):
        self.archive_path = Path(archive_path)
        self._files: Dict[str, tarfile.TarInfo] = {}
        self._children: Dict[str, Dict[str, bool]] = {"": {}}

        try:
            self._tar = tarfile.open(self.archive_path, mode="r:gz")
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            raise SourceError(f"Cannot open archive {self.archive_path}: {e}") from e

        try:
            members = self._tar.getmembers()
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            self._tar.close()
            raise SourceError(f"Cannot read archive {self.archive_path}: {e}") from e

        for member in members:
            try:
                name = normalize_store_path(member.name)
            except FileNotFoundError:
                continue
            if not name:
                continue
            if member.isfile():
                self._files[name] = member
                self._add_entry(name, is_dir=False)
            elif member.isdir():
                self._add_entry(name, is_dir=True)

    def _add_entry(self, name: str, is_dir: bool) -> None:
        if is_dir:
            self._children.setdefault(name, {})
        parent, _, base = name.rpartition("/")
        siblings = self._children.setdefault(parent, {})
        siblings[base] = is_dir or siblings.get(base, False)
        # Register every ancestor as a directory
        while parent:
            grandparent, _, base = parent.rpartition("/")
            self._children.setdefault(grandparent, {})[base] = True
            parent = grandparent

    def open(self, path: str) -> BinaryIO:
        name = normalize_store_path(path)
        member = self._files.get(name)
        if member is None:
            if name in self._children or not name:
                raise IsADirectoryError(f"Is a directory in archive: {path}")
            raise FileNotFoundError(f"No such file in archive: {path}")
        return self._tar.extractfile(member)

    def listdir(self, path: str) -> List[StoreEntry]:
        name = normalize_store_path(path)
        if name in self._files:
            raise NotADirectoryError(f"Not a directory in archive: {path}")
        if name and name not in self._children:
            raise FileNotFoundError(f"No such directory in archive: {path}")
        children = self._children.get(name, {})
        return [StoreEntry(child, children[child]) for child in sorted(children)]

    def exists(self, path: str) -> bool:
        try:
            return normalize_store_path(path) in self._files
        except FileNotFoundError:
            return False

    def close(self) -> None:
        self._tar.close()

    def __repr__(self):
        return f"ArchiveStore({str(self.archive_path)!r})"


def open_source(source_path: Union[str, Path]) -> SourceStore:
    """
    Open a backup source, choosing the store type from the path.

    Raises:
        SourceError: if the path does not exist, is not a folder or a
            recognized archive, or the archive cannot be read
    """
    source_path = Path(source_path)
    if not source_path.exists():
        raise SourceError(f"Source path not found: {source_path}")

    if source_path.is_dir():
        return DirectoryStore(source_path)

    if source_path.name.lower().endswith(ARCHIVE_SUFFIXES):
        return ArchiveStore(source_path)

    raise SourceError(
        f"Only folders and .mbz files are supported: {source_path}"
    )
