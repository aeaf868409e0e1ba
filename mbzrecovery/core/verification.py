# SPDX-License-Identifier: GPL-3.0-or-later
"""
Verification functionality for mbzRecovery.

Checks which files of the mapping actually have their content in the
backup, without copying anything.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

from typing import Any, Dict, Set

from .mapping import FileRecord
from .store import SourceStore
from .utils import FILES_DIR, content_path


def scan_files_directory(source: SourceStore) -> Set[str]:
    """Return the content hashes of every payload stored in the backup."""
    content_hashes = set()

    print("🔍 Scanning files directory...")
    try:
        prefixes = source.listdir(FILES_DIR)
    except OSError:
        return content_hashes

    for prefix in prefixes:
        if not prefix.is_dir:
            continue
        prefix_path = f"{FILES_DIR}/{prefix.name}"
        try:
            entries = source.listdir(prefix_path)
        except OSError as e:
            print(f"⚠️  Error reading {prefix_path}: {e}")
            continue
        for entry in entries:
            if not entry.is_dir:
                content_hashes.add(entry.name)

    return content_hashes


def verify_file_availability(
    source: SourceStore, file_mapping: Dict[str, FileRecord]
) -> Dict[str, Any]:
    """Check that the content of every mapped file is present in the backup."""
    total_files = len(file_mapping)
    if not total_files:
        print("⚠️  No files to verify")
        return {
            "total_files": 0,
            "available_count": 0,
            "missing_count": 0,
            "invalid_hash_count": 0,
            "orphaned_count": 0,
            "availability_rate": 0.0,
            "missing": [],
        }

    print(f"🔍 Verifying file availability ({total_files} files)...")

    available = 0
    invalid = 0
    missing = []
    referenced_hashes = set()

    for file_id, file_record in file_mapping.items():
        source_path = content_path(file_record.content_hash)
        if source_path is None:
            invalid += 1
            continue
        referenced_hashes.add(file_record.content_hash)
        if source.exists(source_path):
            available += 1
        else:
            missing.append(file_id)

    # Content present in the backup that no file entry points to
    orphaned = scan_files_directory(source) - referenced_hashes

    availability_rate = (available / total_files) * 100

    print(
        f"📊 File availability: {availability_rate:.1f}% ({available}/{total_files} found)"
    )
    if invalid:
        print(f"  Invalid content hashes: {invalid}")
    if orphaned:
        print(f"  Orphaned content: {len(orphaned)} (in files/ but not in files.xml)")

    if availability_rate >= 90:
        print("✅ Good availability - proceed with extraction")
    elif availability_rate >= 70:
        print("⚠️  Moderate availability - some files may be missing")
    else:
        print("❌ Low availability - check that the backup is complete")

    return {
        "total_files": total_files,
        "available_count": available,
        "missing_count": len(missing),
        "invalid_hash_count": invalid,
        "orphaned_count": len(orphaned),
        "availability_rate": availability_rate,
        "missing": missing,
    }
