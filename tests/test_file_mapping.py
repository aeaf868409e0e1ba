"""Test building the file mapping from files.xml."""

import pytest

from mbzrecovery.core.errors import MappingError
from mbzrecovery.core.mapping import FileRecord, build_file_mapping
from mbzrecovery.core.store import DirectoryStore

EMPTY_SHA1 = "da39a3ee5e6b4b0d3255bfef95601890afd80709"


def build(builder):
    builder.write_files_xml()
    with DirectoryStore(builder.root) as store:
        return build_file_mapping(store)


class TestBuildFileMapping:
    """Test files.xml parsing and entry validation."""

    def test_sanitized_filename_and_empty_folder(self, backup_builder):
        backup_builder.add_file("1", "a/b.txt", content_hash=EMPTY_SHA1)

        mapping = build(backup_builder)

        assert mapping == {
            "1": FileRecord(id="1", content_hash=EMPTY_SHA1, filename="ab.txt")
        }
        assert mapping["1"].folder == ""

    def test_sample_backup(self, mock_backup_structure):
        with DirectoryStore(mock_backup_structure["root"]) as store:
            mapping = build_file_mapping(store)

        assert set(mapping) == {"1", "2", "3", "4"}
        assert mapping["2"].filename == "notes.pdf"
        assert mapping["2"].content_hash == mock_backup_structure["hashes"]["2"]

    def test_directory_entries_skipped(self, backup_builder):
        backup_builder.add_file("1", ".", content_hash=EMPTY_SHA1)
        backup_builder.add_file("2", "real.txt", content_hash=EMPTY_SHA1)

        assert list(build(backup_builder)) == ["2"]

    def test_name_sanitized_to_dot_skipped(self, backup_builder):
        backup_builder.add_file("1", "/.", content_hash=EMPTY_SHA1)
        backup_builder.add_file("2", "?", content_hash=EMPTY_SHA1)

        assert build(backup_builder) == {}

    def test_missing_id_or_hash_skipped(self, backup_builder):
        backup_builder.add_file("", "no-id.txt", content_hash=EMPTY_SHA1)
        backup_builder.add_file("2", "no-hash.txt", content_hash="")
        backup_builder.add_file("3", "ok.txt", content_hash=EMPTY_SHA1)

        assert list(build(backup_builder)) == ["3"]

    def test_short_hash_kept(self, backup_builder):
        """Short hashes are only rejected when the content is copied."""
        backup_builder.add_file("1", "short.txt", content_hash="x")

        assert build(backup_builder)["1"].content_hash == "x"

    def test_duplicate_id_last_wins(self, backup_builder):
        backup_builder.add_file("1", "first.txt", content_hash="aa11")
        backup_builder.add_file("1", "second.txt", content_hash="bb22")

        mapping = build(backup_builder)

        assert len(mapping) == 1
        assert mapping["1"].filename == "second.txt"
        assert mapping["1"].content_hash == "bb22"

    def test_one_record_per_distinct_id(self, backup_builder):
        ids = ["7", "8", "7", "9", "8", "7"]
        for n, file_id in enumerate(ids):
            backup_builder.add_file(file_id, f"file{n}.txt", content_hash=f"{n:02d}ff")

        mapping = build(backup_builder)

        assert set(mapping) == {"7", "8", "9"}
        assert mapping["7"].filename == "file5.txt"
        assert mapping["8"].filename == "file4.txt"

    def test_empty_files_xml(self, backup_builder):
        assert build(backup_builder) == {}

    def test_debug_output(self, backup_builder, capsys):
        from mbzrecovery.core.utils import set_debug

        set_debug(True)
        backup_builder.add_file("1", "shown.txt", content_hash=EMPTY_SHA1)
        build(backup_builder)

        assert "Added file to mapping: ID=1" in capsys.readouterr().out


class TestBuildFileMappingErrors:
    def test_missing_files_xml(self, backup_builder):
        with DirectoryStore(backup_builder.root) as store:
            with pytest.raises(MappingError, match="Error reading"):
                build_file_mapping(store)

    def test_malformed_files_xml(self, backup_builder):
        (backup_builder.root / "files.xml").write_text("<files><file id='1'>")
        with DirectoryStore(backup_builder.root) as store:
            with pytest.raises(MappingError, match="Error parsing"):
                build_file_mapping(store)

    def test_custom_path(self, backup_builder):
        backup_builder.add_file("1", "a.txt", content_hash=EMPTY_SHA1)
        files_xml = backup_builder.write_files_xml()
        files_xml.rename(backup_builder.root / "other.xml")

        with DirectoryStore(backup_builder.root) as store:
            assert list(build_file_mapping(store, "other.xml")) == ["1"]
