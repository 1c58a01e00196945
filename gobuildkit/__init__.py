"""
gobuildkit - compile Go code into C-compatible libraries from build scripts.

Typical use from a Cargo build script driven by Python:

    from gobuildkit import Build

    Build().file("hello.go").compile("hello")

Lower-level entry points (BuildOrchestrator, BuildConfiguration) are
exported for callers that assemble configurations themselves.
"""

from gobuildkit.build import (
    Build,
    BuildOrchestrator,
    BuildResult,
    BuildState,
    Fingerprint,
)
from gobuildkit.caching import Artifact
from gobuildkit.config import BuildConfiguration, BuildMode, parse_config
from gobuildkit.core import (
    BuildIOError,
    CacheCorruption,
    CompilationFailed,
    CompilationTimeout,
    ConfigurationError,
    GoBuildKitError,
    HostEnvironment,
    LockTimeout,
    ToolchainNotFound,
)
from gobuildkit.cross import TargetSpec

__version__ = "0.3.0"

__all__ = [
    "Build",
    "BuildOrchestrator",
    "BuildResult",
    "BuildState",
    "Fingerprint",
    "Artifact",
    "BuildConfiguration",
    "BuildMode",
    "parse_config",
    "HostEnvironment",
    "TargetSpec",
    "GoBuildKitError",
    "ConfigurationError",
    "ToolchainNotFound",
    "CompilationFailed",
    "CompilationTimeout",
    "CacheCorruption",
    "BuildIOError",
    "LockTimeout",
    "__version__",
]
