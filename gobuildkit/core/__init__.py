"""
Core functionality for gobuildkit.

This package contains the foundational modules that other components depend on.
"""

from .environment import HostEnvironment

from .exceptions import (
    GoBuildKitError,
    ConfigurationError,
    ToolchainNotFound,
    CompilationFailed,
    CompilationTimeout,
    CacheCorruption,
    BuildIOError,
    LockTimeout,
)

from .filesystem import (
    FilesystemError,
    atomic_write,
    compute_file_hash,
    find_executable,
    iter_files,
)

from .locking import OutputDirectoryLock

__all__ = [
    "HostEnvironment",
    "GoBuildKitError",
    "ConfigurationError",
    "ToolchainNotFound",
    "CompilationFailed",
    "CompilationTimeout",
    "CacheCorruption",
    "BuildIOError",
    "LockTimeout",
    "FilesystemError",
    "atomic_write",
    "compute_file_hash",
    "find_executable",
    "iter_files",
    "OutputDirectoryLock",
]
