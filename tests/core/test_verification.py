"""
Tests for hash verification.
"""

import hashlib

import pytest

from nexekit.core.verification import compute_file_hash, hashes_match, parse_hash_text


class TestComputeFileHash:
    """Test compute_file_hash function."""

    def test_sha256(self, tmp_path):
        path = tmp_path / "archive.tar.gz"
        path.write_bytes(b"hello world")

        assert compute_file_hash(path) == hashlib.sha256(b"hello world").hexdigest()

    def test_sha512(self, tmp_path):
        path = tmp_path / "archive.tar.gz"
        path.write_bytes(b"hello world")

        assert (
            compute_file_hash(path, "sha512")
            == hashlib.sha512(b"hello world").hexdigest()
        )

    def test_unsupported_algorithm(self, tmp_path):
        path = tmp_path / "archive.tar.gz"
        path.write_bytes(b"x")

        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            compute_file_hash(path, "md5")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            compute_file_hash(tmp_path / "missing")


class TestHashesMatch:
    def test_case_and_whitespace_insensitive(self):
        assert hashes_match("ABCDEF", " abcdef\n")

    def test_mismatch(self):
        assert not hashes_match("abc", "abd")


class TestParseHashText:
    """Test parsing of SHASUMS256.txt content."""

    def test_parse_node_shasums(self):
        """Test the format Node.js publishes."""
        text = (
            "aaaa  node-v4.2.1-darwin-x64.tar.gz\n"
            "bbbb  node-v4.2.1.tar.gz\n"
            "cccc *node-v4.2.1-x64.msi\n"
        )

        hashes = parse_hash_text(text)

        assert hashes == {
            "node-v4.2.1-darwin-x64.tar.gz": "aaaa",
            "node-v4.2.1.tar.gz": "bbbb",
            "node-v4.2.1-x64.msi": "cccc",
        }

    def test_skips_comments_and_blank_lines(self):
        text = "# checksums\n\nbbbb  node-v4.2.1.tar.gz\n"

        assert parse_hash_text(text) == {"node-v4.2.1.tar.gz": "bbbb"}

    def test_skips_invalid_lines(self):
        assert parse_hash_text("justonefield\n") == {}

    def test_skips_traversal_filenames(self):
        """Test entries with suspicious paths are dropped."""
        text = "aaaa  ../../etc/passwd\nbbbb  /abs/node.tar.gz\n"

        assert parse_hash_text(text) == {}
