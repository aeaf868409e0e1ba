# SPDX-License-Identifier: GPL-3.0-or-later
"""
mbzRecovery Core Modules

Core functionality modules for the mbzRecovery toolkit.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

__version__ = "1.0.0"
__license__ = "GPL-3.0-or-later"

# Import main functionality for easy access
from .documents import (
    attribute,
    decode_document,
    decode_sequence,
    element,
    elements,
    ignored,
)
from .errors import (
    DocumentError,
    FolderResolutionError,
    MappingError,
    RecoveryError,
    SourceError,
)
from .file_operations import copy_file_record, copy_files, get_destination_path
from .folders import ACTIVITIES_DIR, resolve_folders
from .mapping import FILES_XML, FileRecord, build_file_mapping
from .store import ArchiveStore, DirectoryStore, SourceStore, StoreEntry, open_source
from .utils import (
    content_path,
    format_size,
    is_debug,
    log_debug,
    sanitize_file_name,
    set_debug,
)
from .verification import scan_files_directory, verify_file_availability

__all__ = [
    "attribute",
    "decode_document",
    "decode_sequence",
    "element",
    "elements",
    "ignored",
    "DocumentError",
    "FolderResolutionError",
    "MappingError",
    "RecoveryError",
    "SourceError",
    "copy_file_record",
    "copy_files",
    "get_destination_path",
    "ACTIVITIES_DIR",
    "resolve_folders",
    "FILES_XML",
    "FileRecord",
    "build_file_mapping",
    "ArchiveStore",
    "DirectoryStore",
    "SourceStore",
    "StoreEntry",
    "open_source",
    "content_path",
    "format_size",
    "is_debug",
    "log_debug",
    "sanitize_file_name",
    "set_debug",
    "scan_files_directory",
    "verify_file_availability",
]
