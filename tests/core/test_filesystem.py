"""
Tests for filesystem utilities.
"""

import io
import tarfile

import pytest

from nexekit.core.cancellation import CancellationToken
from nexekit.core.exceptions import ExtractionError, OperationCancelled
from nexekit.core.filesystem import (
    FilesystemError,
    InsecureArchiveError,
    atomic_write,
    directory_size,
    extract_archive,
    safe_rmtree,
)
from tests.fixtures.node_sources import make_source_archive


def _write_tar(path, members):
    with tarfile.open(path, "w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))


class TestExtractArchive:
    """Test extract_archive function."""

    def test_extract_tar_gz(self, tmp_path):
        """Test extracting a source archive keeps its top-level directory."""
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())

        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "node-v4.2.1" / "node.gyp").is_file()
        assert (tmp_path / "out" / "node-v4.2.1" / "src" / "node.cc").is_file()

    def test_progress_per_member(self, tmp_path):
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())
        progress = []

        extract_archive(
            archive, tmp_path / "out", progress_callback=lambda n, t: progress.append((n, t))
        )

        assert progress == [(1, 4), (2, 4), (3, 4), (4, 4)]

    def test_cancelled_before_first_member(self, tmp_path):
        """Test a cancelled token stops extraction before anything is written."""
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())
        token = CancellationToken()
        token.cancel("interrupted")

        with pytest.raises(OperationCancelled, match="interrupted"):
            extract_archive(archive, tmp_path / "out", cancel_token=token)

        assert list((tmp_path / "out").iterdir()) == []

    def test_timeout(self, tmp_path):
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())

        with pytest.raises(ExtractionError, match="timed out"):
            extract_archive(archive, tmp_path / "out", timeout=0)

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ExtractionError, match="Archive not found"):
            extract_archive(tmp_path / "missing.tar.gz", tmp_path / "out")

    def test_unsupported_format(self, tmp_path):
        """Test non-tar archives are rejected."""
        archive = tmp_path / "node.zip"
        archive.write_bytes(b"PK")

        with pytest.raises(ExtractionError, match="Unsupported archive format"):
            extract_archive(archive, tmp_path / "out")

    def test_corrupt_archive(self, tmp_path):
        """Test a truncated download raises ExtractionError."""
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive()[:40])

        with pytest.raises(ExtractionError, match="Failed to extract"):
            extract_archive(archive, tmp_path / "out")

    def test_directory_traversal_blocked(self, tmp_path):
        """Test members escaping the destination are refused."""
        archive = tmp_path / "evil.tar.gz"
        _write_tar(archive, {"../escape.txt": b"gotcha"})

        with pytest.raises(InsecureArchiveError):
            extract_archive(archive, tmp_path / "out")

        assert not (tmp_path / "escape.txt").exists()


class TestAtomicWrite:
    """Test atomic_write function."""

    def test_write_new_file(self, tmp_path):
        path = tmp_path / "lib" / "nexe.js"

        atomic_write(path, "console.log(1);\n")

        assert path.read_text() == "console.log(1);\n"

    def test_preserves_line_endings(self, tmp_path):
        """Test CRLF content is written byte-for-byte."""
        path = tmp_path / "node.gyp"

        atomic_write(path, "line1\r\nline2\r\n")

        assert path.read_bytes() == b"line1\r\nline2\r\n"

    def test_replaces_existing(self, tmp_path):
        """Test an existing file is replaced and no temp files remain."""
        path = tmp_path / "node.gyp"
        path.write_text("old")

        atomic_write(path, "new")

        assert path.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["node.gyp"]

    def test_write_bytes(self, tmp_path):
        path = tmp_path / "blob.bin"

        atomic_write(path, b"\x00\x01")

        assert path.read_bytes() == b"\x00\x01"


class TestSafeRmtree:
    """Test safe_rmtree function."""

    def test_removes_tree(self, tmp_path):
        target = tmp_path / "cache" / "4.2.1"
        (target / "node-v4.2.1").mkdir(parents=True)

        safe_rmtree(target, require_prefix=tmp_path / "cache")

        assert not target.exists()

    def test_refuses_outside_prefix(self, tmp_path):
        """Test paths outside the required prefix are never removed."""
        outside = tmp_path / "elsewhere"
        outside.mkdir()

        with pytest.raises(ValueError, match="not under required prefix"):
            safe_rmtree(outside, require_prefix=tmp_path / "cache")

        assert outside.exists()

    def test_missing_path_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "missing")

    def test_file_raises(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(FilesystemError, match="not a directory"):
            safe_rmtree(path)


def test_directory_size(tmp_path):
    """Test sizes of nested files are summed."""
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "one").write_bytes(b"x" * 10)
    (tmp_path / "two").write_bytes(b"y" * 5)

    assert directory_size(tmp_path) == 15
