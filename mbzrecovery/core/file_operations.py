# SPDX-License-Identifier: GPL-3.0-or-later
"""
File operations for mbzRecovery.

Copies file content out of the backup's content-addressed store into the
reconstructed folder layout. Existing files are never overwritten, so an
interrupted extraction can be resumed by running it again.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

import shutil
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Tuple

from tqdm import tqdm

from .mapping import FileRecord
from .store import SourceStore
from .utils import content_path, log_debug

# Outcome of copying a single file
COPIED = "copied"
SKIPPED_EXISTING = "skipped_existing"
MISSING = "missing"
INVALID_HASH = "invalid_hash"
ERROR = "errors"

# Errors that can surface while streaming content out of a store
COPY_ERRORS = (OSError, EOFError, tarfile.TarError, zlib.error)


def new_copy_stats() -> Dict[str, int]:
    return {
        COPIED: 0,
        SKIPPED_EXISTING: 0,
        MISSING: 0,
        INVALID_HASH: 0,
        ERROR: 0,
        "bytes_copied": 0,
    }


def get_destination_path(destination_folder: Path, file_record: FileRecord) -> Path:
    """Return destination/folder/filename, or destination/filename without a folder."""
    if file_record.folder:
        return destination_folder / file_record.folder / file_record.filename
    return destination_folder / file_record.filename


def _remove_partial(dest: Path) -> None:
    try:
        dest.unlink()
    except OSError as e:
        tqdm.write(f"⚠️  Could not remove incomplete file {dest}: {e}")


def copy_stream(stream: BinaryIO, dest: Path) -> Optional[int]:
    """
    Write a stream to a new file.

    The file is created exclusively, so an existing file is never touched.
    An incomplete file is removed if the copy fails.

    Returns:
        Number of bytes written, or None if dest already exists

    Raises:
        OSError (or a decompression error) if reading or writing fails
    """
    try:
        out = open(dest, "xb")
    except FileExistsError:
        return None

    try:
        with out:
            shutil.copyfileobj(stream, out)
            return out.tell()
    except BaseException:
        _remove_partial(dest)
        raise


def copy_file_record(
    source: SourceStore, destination_folder: Path, file_record: FileRecord
) -> Tuple[str, int]:
    """
    Copy the content of one file record to its place in the destination.

    Returns:
        Tuple of (outcome, bytes copied)
    """
    # the content with hash xyz... lives at files/xy/xyz...
    source_path = content_path(file_record.content_hash)
    if source_path is None:
        tqdm.write(f"⚠️  Warning: Invalid ContentHash for file ID {file_record.id}")
        return INVALID_HASH, 0

    if ".." in (file_record.folder, file_record.filename):
        tqdm.write(f"⚠️  Warning: Unsafe destination for file ID {file_record.id}")
        return ERROR, 0

    try:
        stream = source.open(source_path)
    except OSError:
        tqdm.write(f"⚠️  Warning: File {source_path} not found in source folder")
        return MISSING, 0

    with stream:
        dest = get_destination_path(destination_folder, file_record)
        dest_dir = dest.parent
        try:
            dest_exists = dest.exists() or dest.is_symlink()
            dest_dir_exists = dest_dir.is_dir()
        except OSError as e:
            tqdm.write(f"❌ Error checking file {dest}: {e}")
            return ERROR, 0

        if dest_exists:
            tqdm.write(f"Skip (already exists): {dest}")
            return SKIPPED_EXISTING, 0

        if not dest_dir_exists:
            try:
                dest_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                tqdm.write(f"❌ Error creating directory {dest_dir}: {e}")
                return ERROR, 0
            tqdm.write(f"📁 Create: {dest_dir}")

        try:
            size = copy_stream(stream, dest)
        except COPY_ERRORS as e:
            tqdm.write(f"❌ Error copying {source_path} to {dest}: {e}")
            return ERROR, 0

    if size is None:
        tqdm.write(f"Skip (already exists): {dest}")
        return SKIPPED_EXISTING, 0

    tqdm.write(f"Create: {dest}")
    log_debug(f"  {source_path} -> {dest} ({size} bytes)")
    return COPIED, size


def copy_files(
    source: SourceStore,
    destination_folder: Path,
    file_mapping: Dict[str, FileRecord],
    stats: Optional[Dict[str, int]] = None,
    show_progress: bool = True,
) -> int:
    """
    Copy every file of the mapping out of the backup.

    Problems with a single file are reported and the file is skipped; they
    never stop the run.

    Args:
        source: Backup store to read content from
        destination_folder: Root of the reconstructed layout
        file_mapping: Resolved id -> FileRecord mapping
        stats: Optional dictionary updated with per-outcome counters as the
            copy progresses
        show_progress: Whether to display a progress bar

    Returns:
        Number of files copied by this call
    """
    destination_folder = Path(destination_folder)
    if stats is None:
        stats = new_copy_stats()
    else:
        for key, value in new_copy_stats().items():
            stats.setdefault(key, value)

    copied_files = 0
    with tqdm(
        file_mapping.values(),
        total=len(file_mapping),
        desc="Copying files",
        unit="files",
        leave=False,
        dynamic_ncols=True,
        disable=not show_progress,
    ) as pbar:
        for file_record in pbar:
            outcome, size = copy_file_record(source, destination_folder, file_record)
            stats[outcome] += 1
            if outcome == COPIED:
                copied_files += 1
                stats["bytes_copied"] += size

    return copied_files
