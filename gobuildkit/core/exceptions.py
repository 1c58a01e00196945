"""
Centralized exception hierarchy for gobuildkit.

Only CacheCorruption is ever recovered from locally (it downgrades to a
rebuild). Every other error propagates to the caller unmodified so the
person reading the build log sees the original diagnostic text.
"""

from typing import Optional

from filelock import Timeout as LockTimeout


# ============================================================================
# Base Exceptions
# ============================================================================


class GoBuildKitError(Exception):
    """Base exception for all gobuildkit errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(GoBuildKitError):
    """
    Raised for invalid build configuration.

    Covers missing source files, duplicate output names and unsupported
    target triples. Always raised before any subprocess is launched.
    """

    pass


# ============================================================================
# Toolchain Exceptions
# ============================================================================


class ToolchainNotFound(GoBuildKitError):
    """Raised when the Go compiler or a required C compiler is not on PATH."""

    def __init__(self, tool: str, message: Optional[str] = None):
        self.tool = tool
        super().__init__(message or f"Failed to find tool. Is {tool} installed?")


class CompilationFailed(GoBuildKitError):
    """
    Raised when the compiler exits with a nonzero status.

    The captured stderr is carried verbatim, both as an attribute and as
    part of the message.
    """

    def __init__(
        self,
        exit_code: Optional[int],
        stderr: str,
        command: str = "",
        summary: Optional[str] = None,
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command
        msg = summary or (
            f"Command {command!r} did not execute successfully "
            f"(status code {exit_code})."
        )
        if stderr:
            msg += f"\n{stderr.rstrip()}"
        super().__init__(msg)


class CompilationTimeout(CompilationFailed):
    """Raised when the compiler runs past its timeout and is terminated."""

    def __init__(self, timeout: float, stderr: str, command: str = ""):
        self.timeout = timeout
        super().__init__(
            None,
            stderr,
            command,
            summary=f"Command {command!r} timed out after {timeout}s and was terminated.",
        )


# ============================================================================
# Cache and I/O Exceptions
# ============================================================================


class CacheCorruption(GoBuildKitError):
    """Raised when the cache manifest is unreadable or structurally invalid."""

    pass


class BuildIOError(GoBuildKitError, OSError):
    """Raised when the output directory cannot be written."""

    pass


__all__ = [
    "GoBuildKitError",
    "ConfigurationError",
    "ToolchainNotFound",
    "CompilationFailed",
    "CompilationTimeout",
    "CacheCorruption",
    "BuildIOError",
    "LockTimeout",
]
