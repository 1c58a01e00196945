"""
Host build system inputs.

The host build system hands its inputs to a build script as environment
variables. This module snapshots them into an immutable value once, so the
rest of the engine never reads or mutates the process environment.

Example:
    >>> import os
    >>> from gobuildkit.core.environment import HostEnvironment
    >>> host = HostEnvironment.from_mapping(os.environ)
    >>> host.target
    'x86_64-unknown-linux-gnu'
"""

import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

# Inherited variables that change what the Go toolchain produces
BUILD_VARIABLES = ("CC", "CXX", "TARGET_CC", "TARGET_CXX", "AR", "GO_EXTLINK_ENABLED", "GO_LDSO")
BUILD_VARIABLE_PREFIXES = ("CGO_", "CC_", "CXX_", "PKG_CONFIG")

# Go variables that only locate caches and scratch space
LOCATION_VARIABLES = ("GOCACHE", "GOMODCACHE", "GOTMPDIR", "GOTELEMETRY", "GOTELEMETRYDIR")

# Watched even when unset, so setting one later triggers a rebuild
WATCHED_VARIABLES = (
    "GOFLAGS",
    "GOAMD64",
    "GOARM64",
    "GO386",
    "GOEXPERIMENT",
    "GOWORK",
    "GOTOOLCHAIN",
    "CGO_CFLAGS",
    "CGO_CPPFLAGS",
    "CGO_CXXFLAGS",
    "CGO_LDFLAGS",
    "PKG_CONFIG_PATH",
)


def affects_build(key: str) -> bool:
    """
    Whether an inherited variable can change the compiled library.

    Go's own settings are upper-case names starting with GO and holding no
    underscore (GOFLAGS, GOAMD64, GOEXPERIMENT, ...).
    """
    if key in LOCATION_VARIABLES:
        return False
    if key in BUILD_VARIABLES or key.startswith(BUILD_VARIABLE_PREFIXES):
        return True
    return key.startswith("GO") and "_" not in key and key.isupper()


@dataclass(frozen=True)
class HostEnvironment:
    """
    Immutable snapshot of the host build system inputs.

    Attributes:
        variables: Every variable of the snapshot (read-only mapping)
    """

    variables: Mapping[str, str]

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, str]] = None) -> "HostEnvironment":
        """
        Snapshot a mapping of environment variables.

        Args:
            mapping: Source mapping (default: the current process environment)
        """
        if mapping is None:
            mapping = os.environ
        return cls(variables=MappingProxyType(dict(mapping)))

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return a variable, treating empty values as unset."""
        value = self.variables.get(key)
        if value is None or value == "":
            return default
        return value

    @property
    def target(self) -> Optional[str]:
        """Target triple, falling back to Cargo's cfg variables."""
        triple = self.get("TARGET")
        if triple:
            return triple
        arch = self.get("CARGO_CFG_TARGET_ARCH")
        target_os = self.get("CARGO_CFG_TARGET_OS")
        if arch and target_os:
            return f"{arch}-unknown-{target_os}"
        return None

    @property
    def host(self) -> Optional[str]:
        return self.get("HOST")

    @property
    def out_dir(self) -> Optional[Path]:
        value = self.get("OUT_DIR")
        return Path(value) if value else None

    @property
    def path(self) -> str:
        return self.variables.get("PATH", "")

    def c_compiler_override(self, triple: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """
        Find an explicit C compiler in the host inputs.

        Lookup order follows the cc crate conventions: ``CC_<triple>``,
        ``CC_<triple with underscores>``, ``TARGET_CC``, ``CC``.

        Returns:
            Tuple of (variable name, compiler) or (None, None)
        """
        keys: List[str] = []
        if triple:
            keys.append(f"CC_{triple}")
            keys.append(f"CC_{triple.replace('-', '_')}")
        keys.extend(["TARGET_CC", "CC"])

        for key in keys:
            value = self.get(key)
            if value:
                return key, value
        return None, None

    def build_variables(self) -> Dict[str, str]:
        """
        Inherited variables that change the build output, sorted by name.

        Example:
            >>> HostEnvironment.from_mapping({"CGO_CFLAGS": "-O2", "HOME": "/root"}).build_variables()
            {'CGO_CFLAGS': '-O2'}
        """
        return {key: value for key, value in sorted(self.variables.items()) if affects_build(key)}

    def to_dict(self) -> Dict[str, str]:
        """Return a mutable copy suitable as a subprocess environment."""
        return dict(self.variables)


__all__ = ["HostEnvironment", "affects_build", "WATCHED_VARIABLES"]
