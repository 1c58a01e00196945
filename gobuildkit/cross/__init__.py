"""
Cross-compilation support for gobuildkit.

This package maps host build system target triples to the Go toolchain's
GOOS/GOARCH model and locates the C compiler used by cgo.
"""

from gobuildkit.cross.targets import TargetResolver, TargetSpec

__all__ = [
    "TargetResolver",
    "TargetSpec",
]
