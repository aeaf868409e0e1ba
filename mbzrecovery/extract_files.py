#!/usr/bin/env python3
# SPDX-License-Identifier: GPL-3.0-or-later
"""
mbzRecovery File Extraction Script

This script extracts the files of a Moodle course backup and puts them back
into their original folders:
- Reads .mbz backups directly or folders where a backup was extracted
- Restores the folder structure of "folder" activities
- Progress bar for file operations
- Resumable: files that already exist in the destination are skipped

Copyright (C) 2024 mbzRecovery Contributors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.
"""

import argparse
import signal
import sys
from collections import Counter
from pathlib import Path
from typing import Dict

from . import __version__
from .core import (
    ACTIVITIES_DIR,
    FILES_XML,
    FileRecord,
    RecoveryError,
    SourceError,
    SourceStore,
    build_file_mapping,
    copy_files,
    format_size,
    get_destination_path,
    is_debug,
    open_source,
    resolve_folders,
    set_debug,
    verify_file_availability,
)
from .core.file_operations import (
    ERROR,
    INVALID_HASH,
    MISSING,
    SKIPPED_EXISTING,
    new_copy_stats,
)


class ExtractionState:
    """Global state for tracking extraction progress and handling interrupts."""

    def __init__(self):
        self.copy_stats = new_copy_stats()
        self.current_operation = "Initializing"

    def reset(self):
        self.copy_stats = new_copy_stats()
        self.current_operation = "Initializing"

    def signal_handler(self, signum, frame):
        """Handle keyboard interrupt gracefully."""
        print(f"\n\n⚠️  Extraction interrupted by user (Ctrl+C)")
        print(f"📊 Progress before interruption:")
        print(f"   Files copied: {self.copy_stats['copied']}")
        print(f"   Data copied: {format_size(self.copy_stats['bytes_copied'])}")
        print(f"   Current operation: {self.current_operation}")
        print(f"\n💡 You can resume this extraction by running the same command again.")
        print(f"   Files that were already copied will be skipped.")
        sys.exit(130)


# Global extraction state
extraction_state = ExtractionState()


def load_file_mapping(source: SourceStore) -> Dict[str, FileRecord]:
    """Read files.xml and place the files into their folders."""
    extraction_state.current_operation = f"Reading {FILES_XML}"
    file_mapping = build_file_mapping(source, FILES_XML)
    print(f"Found {len(file_mapping)} files in {FILES_XML}")

    extraction_state.current_operation = "Resolving folders"
    resolve_folders(source, ACTIVITIES_DIR, file_mapping)

    # Count records, not assignments: an id can be assigned more than once
    in_folders = [record for record in file_mapping.values() if record.folder]
    folders = {record.folder for record in in_folders}
    print(f"  In folders: {len(in_folders)} files ({len(folders)} folders)")
    print(f"  Top level: {len(file_mapping) - len(in_folders)} files")
    print()

    return file_mapping


def list_files(file_mapping: Dict[str, FileRecord], destination_folder: Path) -> None:
    """Print where every file would be extracted to."""
    folder_counts = Counter(record.folder for record in file_mapping.values())

    for folder in sorted(folder_counts):
        label = folder if folder else "(top level)"
        print(f"📁 {label} ({folder_counts[folder]} files)")
        for record in sorted(
            (r for r in file_mapping.values() if r.folder == folder),
            key=lambda r: r.filename,
        ):
            dest = get_destination_path(destination_folder, record)
            print(f"   {record.filename:<40} -> {dest}  [{record.content_hash}]")


def print_copy_summary(stats: Dict[str, int]) -> None:
    if stats[SKIPPED_EXISTING]:
        print(f"  Already present (skipped): {stats[SKIPPED_EXISTING]}")
    if stats[MISSING]:
        print(f"  Missing from backup: {stats[MISSING]}")
    if stats[INVALID_HASH]:
        print(f"  Invalid content hash: {stats[INVALID_HASH]}")
    if stats[ERROR]:
        print(f"  Errors: {stats[ERROR]}")


def main():
    # Register signal handler for graceful interrupts
    previous_handler = signal.signal(signal.SIGINT, extraction_state.signal_handler)
    extraction_state.reset()

    parser = argparse.ArgumentParser(
        prog="mbzrecovery",
        description=(
            f"Moodle backup file extractor ({__version__}): "
            "extract all files from a .mbz Moodle backup file."
        ),
        epilog="""
Examples:
  mbzrecovery course.mbz ./course_files
  mbzrecovery ./extracted_backup ./course_files
  mbzrecovery --list-only course.mbz
  mbzrecovery --verify course.mbz

Files that already exist in the destination are never overwritten, so an
interrupted extraction can be resumed by running the same command again.
Set MBZ_DEBUG=1 to enable debug output without --debug.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("source", help="Path to .mbz file or extracted folder")
    parser.add_argument(
        "destination_folder",
        nargs="?",
        help="Path to destination folder (not needed for --list-only or --verify)",
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug mode"
    )
    parser.add_argument(
        "--list-only",
        action="store_true",
        help="Show where files would be extracted without copying them",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Check that the content of every file is present in the backup (no extraction)",
    )
    parser.add_argument(
        "--no-progress",
        dest="progress",
        action="store_false",
        default=True,
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    try:
        args = parser.parse_args()

        if not args.destination_folder and not (args.list_only or args.verify):
            parser.error(
                "destination_folder is required unless using --list-only or --verify"
            )

        if args.debug:
            set_debug(True)
        if is_debug():
            print("🔍 Debug output enabled")

        destination_folder = Path(args.destination_folder or ".")

        try:
            source = open_source(args.source)
        except SourceError as e:
            print(f"❌ Error getting source: {e}")
            sys.exit(1)

        try:
            file_mapping = load_file_mapping(source)

            if args.verify:
                print("=" * 60)
                print("FILE AVAILABILITY VERIFICATION")
                print("=" * 60)
                verify_file_availability(source, file_mapping)
                return

            if args.list_only:
                list_files(file_mapping, destination_folder)
                return

            extraction_state.current_operation = f"Copying files to {destination_folder}"
            stats = extraction_state.copy_stats
            copied = copy_files(
                source,
                destination_folder,
                file_mapping,
                stats=stats,
                show_progress=args.progress,
            )
        except RecoveryError as e:
            print(f"❌ {e}")
            sys.exit(1)
        finally:
            try:
                source.close()
            except OSError as e:
                print(f"⚠️  Error closing source: {e}")

        print_copy_summary(stats)
        if copied == 0:
            print("ℹ️  No files copied.")
        else:
            print(
                f"✅ Copied {copied} files to {destination_folder} "
                f"({format_size(stats['bytes_copied'])})"
            )
    finally:
        signal.signal(signal.SIGINT, previous_handler)


if __name__ == "__main__":
    main()
