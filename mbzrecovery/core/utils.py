# SPDX-License-Identifier: GPL-3.0-or-later
"""
Utility functions for mbzRecovery.

General-purpose helper functions used across the toolkit.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

import os
import re
from typing import Optional

# Characters that are invalid in file names on common filesystems,
# plus the C0 control range.
FORBIDDEN_CHARACTERS = re.compile(r'[<>:"/\\|?*\x00-\x1F]+')

# Layout of the content-addressed payload store inside a backup
FILES_DIR = "files"

_debug = bool(os.environ.get("MBZ_DEBUG"))


def set_debug(enabled: bool) -> None:
    """Enable or disable debug output."""
    global _debug
    _debug = enabled


def is_debug() -> bool:
    return _debug


def log_debug(message: str) -> None:
    """Print a message only when debug output is enabled."""
    if _debug:
        print(message)


def sanitize_file_name(name: str) -> str:
    """
    Strip characters that are not allowed in file or folder names.

    Forbidden characters are deleted rather than replaced, so
    "My:Folder" becomes "MyFolder" and "a/b.txt" becomes "ab.txt".
    """
    return FORBIDDEN_CHARACTERS.sub("", name)


def content_path(content_hash: str) -> Optional[str]:
    """
    Return the store path of a payload, or None if the hash is unusable.

    Payloads live at files/<first two characters>/<full hash>.
    """
    if len(content_hash) < 2:
        return None
    return f"{FILES_DIR}/{content_hash[:2]}/{content_hash}"


def format_size(size_bytes: int) -> str:
    """Format file size in human readable format."""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1

    return f"{size_bytes:.1f} {size_names[i]}"
