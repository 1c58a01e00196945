"""
Unit tests for filesystem helpers.
"""

import hashlib
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from gobuildkit.core.filesystem import (
    FilesystemError,
    atomic_write,
    compute_file_hash,
    find_executable,
    iter_files,
)


def _make_executable(path: Path) -> Path:
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


@pytest.mark.skipif(os.name == "nt", reason="POSIX executable bits")
class TestFindExecutable:
    """Tests for find_executable."""

    def test_finds_in_search_paths(self, tmp_path):
        """Test lookup in explicit search paths."""
        exe = _make_executable(tmp_path / "go")

        assert find_executable("go", search_paths=[tmp_path]) == exe

    def test_finds_in_path_env(self, tmp_path):
        """Test lookup in a PATH-style string."""
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        exe = _make_executable(second / "gcc")

        path_env = os.pathsep.join([str(first), str(second)])
        assert find_executable("gcc", path_env=path_env) == exe

    def test_ignores_non_executable(self, tmp_path):
        """Test files without the executable bit are skipped."""
        (tmp_path / "go").write_text("not a program")

        assert find_executable("go", search_paths=[tmp_path]) is None

    def test_direct_path(self, tmp_path):
        """Test names with a path separator are checked directly."""
        exe = _make_executable(tmp_path / "go")

        assert find_executable(str(exe), path_env="") == exe
        assert find_executable(str(tmp_path / "missing"), path_env="") is None

    def test_empty_path_env(self):
        """Test an empty PATH finds nothing."""
        assert find_executable("definitely-not-a-tool", path_env="") is None


class TestAtomicWrite:
    """Tests for atomic_write."""

    def test_writes_text(self, tmp_path):
        """Test text content is written."""
        target = tmp_path / "manifest.json"
        atomic_write(target, '{"version": 1}')

        assert target.read_text() == '{"version": 1}'

    def test_writes_bytes_and_creates_parent(self, tmp_path):
        """Test bytes content and missing parent directories."""
        target = tmp_path / "nested" / "dir" / "data.bin"
        atomic_write(target, b"\x00\x01")

        assert target.read_bytes() == b"\x00\x01"

    def test_failure_keeps_original(self, tmp_path):
        """Test a failed write leaves the old file and no temp files."""
        target = tmp_path / "manifest.json"
        target.write_text("original")

        with patch("pathlib.Path.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError):
                atomic_write(target, "new content")

        assert target.read_text() == "original"
        assert list(tmp_path.iterdir()) == [target]


class TestComputeFileHash:
    """Tests for compute_file_hash."""

    def test_sha256(self, tmp_path):
        """Test the digest matches hashlib."""
        path = tmp_path / "hello.go"
        path.write_bytes(b"package main\n")

        assert compute_file_hash(path) == hashlib.sha256(b"package main\n").hexdigest()

    def test_small_chunks(self, tmp_path):
        """Test chunked reading gives the same digest."""
        path = tmp_path / "big.go"
        data = b"x" * 10000
        path.write_bytes(data)

        assert compute_file_hash(path, chunk_size=7) == hashlib.sha256(data).hexdigest()

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FilesystemError."""
        with pytest.raises(FilesystemError):
            compute_file_hash(tmp_path / "missing.go")

    def test_unsupported_algorithm(self, tmp_path):
        """Test an unknown algorithm raises ValueError."""
        path = tmp_path / "a.go"
        path.write_text("a")

        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            compute_file_hash(path, algorithm="not-a-hash")


class TestIterFiles:
    """Tests for iter_files."""

    def test_sorted_and_skips_dot_dirs(self, tmp_path):
        """Test files are yielded sorted and hidden directories skipped."""
        (tmp_path / "b.go").write_text("b")
        (tmp_path / "a.go").write_text("a")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "c.go").write_text("c")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("ref")

        names = [p.relative_to(tmp_path).as_posix() for p in iter_files(tmp_path)]

        assert names == ["a.go", "b.go", "sub/c.go"]

    def test_listing_error_raises(self, tmp_path):
        """Test directories that cannot be listed raise instead of vanishing."""
        with patch("gobuildkit.core.filesystem.os.scandir", side_effect=PermissionError(13, "denied")):
            with pytest.raises(PermissionError):
                list(iter_files(tmp_path))
