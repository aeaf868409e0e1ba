# SPDX-License-Identifier: GPL-3.0-or-later
"""
Folder resolution for mbzRecovery.

Files that belong to a Moodle "folder" activity are placed in a directory
named after that activity. Each activity lives in its own directory below
activities/, and two of its documents are needed:

    activities/folder_1234/folder.xml   <activity><folder><name>Week 1</name>...
    activities/folder_1234/inforef.xml  <inforef><fileref><file><id>42</id>...

Problems with a single activity are reported and that activity is skipped.
Only an unreadable activities directory stops the run.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .documents import decode_document, element, elements
from .errors import DocumentError, FolderResolutionError
from .mapping import FileRecord
from .store import SourceStore
from .utils import log_debug, sanitize_file_name

ACTIVITIES_DIR = "activities"
FOLDER_PREFIX = "folder_"


@dataclass
class FolderDocument:
    name: str = element("folder/name")


@dataclass
class FileRef:
    id: str = element("id")


@dataclass
class InforefDocument:
    files: List[FileRef] = elements("fileref/file", FileRef)


def _read_activity_document(source: SourceStore, path: str, shape: type):
    """Decode one activity document, or return None after printing why not."""
    try:
        with source.open(path) as stream:
            return decode_document(stream, shape)
    except OSError:
        print(f"⚠️  Warning: {path} not found")
    except DocumentError as e:
        print(f"⚠️  Error parsing {path}: {e}")
    return None


def read_folder_name(source: SourceStore, folder_path: str) -> Optional[str]:
    """Return the sanitized folder name of an activity, or None if unreadable."""
    folder_data = _read_activity_document(
        source, f"{folder_path}/folder.xml", FolderDocument
    )
    if folder_data is None:
        return None
    return sanitize_file_name(folder_data.name)


def read_file_references(source: SourceStore, folder_path: str) -> Optional[List[str]]:
    """Return the file ids referenced by an activity, or None if unreadable."""
    inforef_data = _read_activity_document(
        source, f"{folder_path}/inforef.xml", InforefDocument
    )
    if inforef_data is None:
        return None
    return [fileref.id for fileref in inforef_data.files]


def resolve_folders(
    source: SourceStore,
    activities_path: str,
    file_mapping: Dict[str, FileRecord],
) -> int:
    """
    Assign folder names from folder activities to the files they reference.

    The mapping is updated in place. When a file is referenced by more than
    one folder activity the last one processed wins, and the conflict is
    reported. Activities are processed in name order.

    Returns:
        Number of folder assignments made

    Raises:
        FolderResolutionError: if the activities directory cannot be listed
    """
    try:
        entries = source.listdir(activities_path)
    except OSError as e:
        raise FolderResolutionError(
            f"Error reading activities folder {activities_path}: {e}"
        ) from e

    assigned = 0
    for entry in entries:
        if not entry.name.startswith(FOLDER_PREFIX):
            continue
        folder_path = f"{activities_path}/{entry.name}"

        folder_name = read_folder_name(source, folder_path)
        if folder_name is None:
            continue

        file_ids = read_file_references(source, folder_path)
        if file_ids is None:
            continue

        for file_id in file_ids:
            file_record = file_mapping.get(file_id)
            if file_record is None:
                print(f"⚠️  Warning: File ID {file_id} not found in file mapping")
                continue

            if file_record.folder and file_record.folder != folder_name:
                print(
                    f"⚠️  File ID {file_id} is referenced by several folders: "
                    f"'{file_record.folder}' replaced by '{folder_name}'"
                )
            file_record.folder = folder_name
            assigned += 1
            log_debug(f"Assigned folder to file: ID={file_id}, Folder={folder_name}")

    return assigned
