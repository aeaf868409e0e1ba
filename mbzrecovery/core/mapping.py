# SPDX-License-Identifier: GPL-3.0-or-later
"""
File mapping for mbzRecovery.

Reads the backup's files.xml and builds the mapping of file ids to the
records used by the rest of the extraction. files.xml looks like this:

    <files>
      <file id="70829635">
        <contenthash>da39a3ee5e6b4b0d3255bfef95601890afd80709</contenthash>
        <filename>empty.txt</filename>
        ...
      </file>
      ...
    </files>

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

from dataclasses import dataclass
from typing import Dict

from .documents import attribute, decode_sequence, element, ignored
from .errors import DocumentError, MappingError
from .store import SourceStore
from .utils import log_debug, sanitize_file_name

FILES_XML = "files.xml"


@dataclass
class FileRecord:
    """One file entry of files.xml."""

    id: str = attribute("id")
    content_hash: str = element("contenthash")
    filename: str = element("filename")
    # Filled in from the activities, never present in files.xml
    folder: str = ignored()


def build_file_mapping(
    source: SourceStore, files_xml_path: str = FILES_XML
) -> Dict[str, FileRecord]:
    """
    Build the id -> FileRecord mapping from files.xml.

    Filenames are sanitized. Entries without an id or content hash, or whose
    name sanitizes to "." or to nothing, are left out. When an id appears
    more than once the last entry wins.

    Raises:
        MappingError: if the document cannot be opened or decoded
    """
    try:
        with source.open(files_xml_path) as stream:
            entries = decode_sequence(stream, FileRecord, "file")
    except OSError as e:
        raise MappingError(f"Error reading {files_xml_path}: {e}") from e
    except DocumentError as e:
        raise MappingError(f"Error parsing {files_xml_path}: {e}") from e

    file_mapping: Dict[str, FileRecord] = {}
    for entry in entries:
        entry.filename = sanitize_file_name(entry.filename)
        if not entry.id or not entry.content_hash or entry.filename in ("", "."):
            continue
        file_mapping[entry.id] = entry
        log_debug(
            f"Added file to mapping: ID={entry.id}, "
            f"ContentHash={entry.content_hash}, Filename={entry.filename}"
        )

    return file_mapping
