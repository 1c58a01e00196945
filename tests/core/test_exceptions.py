"""
Unit tests for the exception hierarchy.
"""

import pytest

from gobuildkit.core.exceptions import (
    BuildIOError,
    CacheCorruption,
    CompilationFailed,
    CompilationTimeout,
    ConfigurationError,
    GoBuildKitError,
    LockTimeout,
    ToolchainNotFound,
)


class TestHierarchy:
    """Tests for exception base classes."""

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigurationError, CacheCorruption, BuildIOError],
    )
    def test_subclasses_base(self, exc_class):
        """Test every build error derives from GoBuildKitError."""
        assert issubclass(exc_class, GoBuildKitError)

    def test_build_io_error_is_os_error(self):
        """Test BuildIOError can be caught as OSError."""
        with pytest.raises(OSError):
            raise BuildIOError("disk full")

    def test_timeout_is_compilation_failure(self):
        """Test CompilationTimeout is a CompilationFailed."""
        assert issubclass(CompilationTimeout, CompilationFailed)

    def test_lock_timeout_is_filelock_timeout(self):
        """Test LockTimeout is re-exported from filelock."""
        from filelock import Timeout

        assert LockTimeout is Timeout


class TestToolchainNotFound:
    """Tests for ToolchainNotFound."""

    def test_default_message_names_tool(self):
        """Test the default message names the missing tool."""
        error = ToolchainNotFound("go")

        assert error.tool == "go"
        assert str(error) == "Failed to find tool. Is go installed?"

    def test_custom_message(self):
        """Test a custom message replaces the default."""
        error = ToolchainNotFound("cc", "could not find c compiler")

        assert str(error) == "could not find c compiler"


class TestCompilationFailed:
    """Tests for CompilationFailed."""

    def test_carries_stderr_verbatim(self):
        """Test stderr is kept byte for byte and included in the message."""
        stderr = "# example.com/hello\n./hello.go:7:2: undefined: foo\n"
        error = CompilationFailed(2, stderr, "go build")

        assert error.exit_code == 2
        assert error.stderr == stderr
        assert "./hello.go:7:2: undefined: foo" in str(error)
        assert "status code 2" in str(error)

    def test_summary_replaces_status_line(self):
        """Test summary replaces the generic status message."""
        error = CompilationFailed(0, "", "go build", summary="no archive produced")

        assert str(error) == "no archive produced"


class TestCompilationTimeout:
    """Tests for CompilationTimeout."""

    def test_message_and_attributes(self):
        """Test timeout keeps the partial stderr and the timeout value."""
        error = CompilationTimeout(1.5, "partial output\n", "go build")

        assert error.timeout == 1.5
        assert error.exit_code is None
        assert error.stderr == "partial output\n"
        assert "timed out after 1.5s" in str(error)
        assert "partial output" in str(error)
