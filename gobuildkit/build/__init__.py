"""
Build orchestration for gobuildkit.
"""

from gobuildkit.build.sources import Fingerprint, SourceSet, SourceSetBuilder
from gobuildkit.build.orchestrator import (
    BuildOrchestrator,
    BuildResult,
    BuildRun,
    BuildState,
)
from gobuildkit.build.builder import Build

__all__ = [
    "Fingerprint",
    "SourceSet",
    "SourceSetBuilder",
    "BuildOrchestrator",
    "BuildResult",
    "BuildRun",
    "BuildState",
    "Build",
]
