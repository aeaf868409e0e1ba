# SPDX-License-Identifier: GPL-3.0-or-later
"""
Exceptions for mbzRecovery.

Fatal conditions are raised as subclasses of RecoveryError and handled by the
command-line entry point. Per-file and per-folder problems are reported where
they happen and never raised.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""


class RecoveryError(Exception):
    """Base class for errors that abort a recovery run."""


class SourceError(RecoveryError):
    """The backup source is missing, unsupported or unreadable."""


class DocumentError(RecoveryError):
    """A metadata document could not be decoded."""


class MappingError(RecoveryError):
    """The primary files.xml document could not be read or decoded."""


class FolderResolutionError(RecoveryError):
    """The activities directory could not be listed."""
