"""
Pytest configuration and shared fixtures for gobuildkit tests.
"""

import io
from pathlib import Path

import pytest

# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.toolchains import recording_toolchain, fake_go
from tests.fixtures.projects import go_project

from gobuildkit.build.orchestrator import BuildOrchestrator
from gobuildkit.core.environment import HostEnvironment
from gobuildkit.emit.cargo import CargoDirectiveWriter

LINUX_TRIPLE = "x86_64-unknown-linux-gnu"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def out_dir(tmp_path) -> Path:
    """Output directory as a build script would receive it."""
    return tmp_path / "out"


@pytest.fixture
def host_env(out_dir) -> HostEnvironment:
    """Host inputs of a native Linux build with an explicit C compiler."""
    return HostEnvironment.from_mapping(
        {
            "TARGET": LINUX_TRIPLE,
            "HOST": LINUX_TRIPLE,
            "OUT_DIR": str(out_dir),
            "CC": "cc",
            "PATH": "",
        }
    )


@pytest.fixture
def directive_stream() -> io.StringIO:
    """Captures directives written by the orchestrator."""
    return io.StringIO()


@pytest.fixture
def orchestrator(host_env, recording_toolchain, directive_stream) -> BuildOrchestrator:
    """Orchestrator wired to the recording toolchain."""
    return BuildOrchestrator(
        host_env=host_env,
        toolchain=recording_toolchain,
        writer=CargoDirectiveWriter(stream=directive_stream),
        lock_timeout=5,
    )
