"""Pytest configuration and fixtures for mbz recovery tests."""

import hashlib
import tarfile
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

import pytest

from mbzrecovery.core import set_debug


class BackupBuilder:
    """Write a Moodle backup layout (files.xml, files/, activities/) to disk."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.entries: List[Tuple[str, str, str]] = []

    def add_content(self, content: bytes) -> str:
        """Store content at files/<first 2>/<sha1> and return the hash."""
        content_hash = hashlib.sha1(content).hexdigest()
        content_dir = self.root / "files" / content_hash[:2]
        content_dir.mkdir(parents=True, exist_ok=True)
        (content_dir / content_hash).write_bytes(content)
        return content_hash

    def add_file(
        self,
        file_id: str,
        filename: str,
        content: Optional[bytes] = None,
        content_hash: Optional[str] = None,
    ) -> str:
        """Add a files.xml entry, storing its content when given."""
        if content is not None:
            content_hash = self.add_content(content)
        content_hash = content_hash or ""
        self.entries.append((file_id, content_hash, filename))
        return content_hash

    def write_files_xml(self) -> Path:
        lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<files>"]
        for file_id, content_hash, filename in self.entries:
            lines.append(f"  <file id={quoteattr(file_id)}>")
            lines.append(f"    <contenthash>{escape(content_hash)}</contenthash>")
            lines.append("    <contextid>40</contextid>")
            lines.append("    <component>mod_folder</component>")
            lines.append("    <filearea>content</filearea>")
            lines.append("    <filepath>/</filepath>")
            lines.append(f"    <filename>{escape(filename)}</filename>")
            lines.append("  </file>")
        lines.append("</files>")

        files_xml = self.root / "files.xml"
        files_xml.write_text("\n".join(lines), encoding="utf-8")
        return files_xml

    def add_folder_activity(
        self,
        activity_dir: str,
        folder_name: Optional[str],
        file_ids: Optional[Iterable[str]],
    ) -> Path:
        """
        Create activities/<activity_dir>. A None folder_name or file_ids
        leaves out folder.xml or inforef.xml respectively.
        """
        bundle = self.root / "activities" / activity_dir
        bundle.mkdir(parents=True, exist_ok=True)

        if folder_name is not None:
            (bundle / "folder.xml").write_text(
                '<?xml version="1.0" encoding="UTF-8"?>\n'
                '<activity id="5" moduleid="12" modulename="folder" contextid="40">\n'
                '  <folder id="5">\n'
                f"    <name>{escape(folder_name)}</name>\n"
                "    <intro></intro>\n"
                "    <revision>1</revision>\n"
                "  </folder>\n"
                "</activity>\n",
                encoding="utf-8",
            )

        if file_ids is not None:
            refs = "".join(
                f"    <file>\n      <id>{escape(file_id)}</id>\n    </file>\n"
                for file_id in file_ids
            )
            (bundle / "inforef.xml").write_text(
                '<?xml version="1.0" encoding="UTF-8"?>\n'
                "<inforef>\n"
                "  <fileref>\n"
                f"{refs}"
                "  </fileref>\n"
                "</inforef>\n",
                encoding="utf-8",
            )
        return bundle

    def build_archive(self, archive_path: Path, prefix: str = "") -> Path:
        """Pack the backup into a gzip compressed tar (.mbz)."""
        with tarfile.open(archive_path, "w:gz") as tar:
            for child in sorted(self.root.iterdir()):
                tar.add(child, arcname=f"{prefix}{child.name}")
        return archive_path


@pytest.fixture(autouse=True)
def reset_debug():
    """Keep debug output off between tests."""
    set_debug(False)
    yield
    set_debug(False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def backup_builder(temp_dir):
    """Empty backup layout to fill in from a test."""
    return BackupBuilder(temp_dir / "backup")


@pytest.fixture
def sample_files_data():
    """Sample files.xml entries with their content."""
    return [
        {"id": "1", "filename": "a/b.txt", "content": b"hello world"},
        {"id": "2", "filename": "notes.pdf", "content": b"%PDF-1.4 course notes"},
        {"id": "3", "filename": "week2.docx", "content": b"week two handout"},
        {"id": "4", "filename": "syllabus.txt", "content": b"course syllabus"},
    ]


@pytest.fixture
def mock_backup_structure(backup_builder, sample_files_data):
    """
    Create an extracted backup:

        files 1 and 3 are in folder activities, 2 and 4 are top level,
        folder_7 also references an id that is not in files.xml,
        resource_9 is not a folder activity and must be ignored.
    """
    hashes = {}
    for item in sample_files_data:
        hashes[item["id"]] = backup_builder.add_file(
            item["id"], item["filename"], item["content"]
        )
    # Directory entry, always present in real backups
    backup_builder.add_file(
        "5", ".", content_hash="da39a3ee5e6b4b0d3255bfef95601890afd80709"
    )
    backup_builder.write_files_xml()

    backup_builder.add_folder_activity("folder_5", "My:Folder", ["1", "5"])
    backup_builder.add_folder_activity("folder_7", "Week 2", ["3", "999"])
    backup_builder.add_folder_activity("resource_9", "Not a folder", ["4"])

    return {"root": backup_builder.root, "hashes": hashes, "builder": backup_builder}


@pytest.fixture
def mock_mbz_archive(mock_backup_structure, temp_dir):
    """The mock backup packed as a .mbz file."""
    builder = mock_backup_structure["builder"]
    return builder.build_archive(temp_dir / "course.mbz")
