"""
File system utilities for gobuildkit.

This module provides the small set of file operations the build engine
relies on:
- Atomic writes (temp file + rename) for the cache manifest
- Streaming content hashes for fingerprinting
- Executable lookup on PATH or explicit search paths
"""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Union

IS_WINDOWS = os.name == "nt"


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


def find_executable(
    name: str, search_paths: Optional[List[Path]] = None, path_env: Optional[str] = None
) -> Optional[Path]:
    """
    Find an executable in PATH or provided search paths.

    A name containing a path separator is checked directly instead of being
    searched for.

    Args:
        name: Executable name (e.g., 'go', 'gcc') or path
        search_paths: Optional list of directories to search
        path_env: PATH-style string to search when search_paths is not given
            (default: the current process PATH)

    Returns:
        Path to executable if found, None otherwise

    Example:
        >>> find_executable('go')
        PosixPath('/usr/local/go/bin/go')
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if os.sep in name or (os.altsep and os.altsep in name):
        for ext in extensions:
            candidate = Path(f"{name}{ext}")
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return candidate
        return None

    if search_paths is None:
        if path_env is None:
            path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    for directory in search_paths:
        for ext in extensions:
            exe_path = directory / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    The file is never observed in a partially written state. If the write
    fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def compute_file_hash(
    file_path: Union[str, Path], algorithm: str = "sha256", chunk_size: int = 65536
) -> str:
    """
    Compute hash of a file, reading it in chunks.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha256', 'sha1', 'md5')
        chunk_size: Number of bytes to read at once

    Returns:
        Hex digest of the hash

    Raises:
        FilesystemError: If the file does not exist
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FilesystemError(f"File not found: {file_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()


def iter_files(directory: Path) -> Iterator[Path]:
    """
    Yield every regular file below directory in sorted order.

    Dot-directories (.git, .cache, ...) are skipped.

    Raises:
        OSError: If a directory below cannot be listed
    """

    def fail(error: OSError) -> None:
        raise error

    for root, dirs, files in os.walk(directory, onerror=fail):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(files):
            path = Path(root) / name
            if path.is_file():
                yield path


__all__ = [
    "FilesystemError",
    "find_executable",
    "atomic_write",
    "compute_file_hash",
    "iter_files",
]
