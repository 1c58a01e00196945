"""
Cross-compilation target resolution.

This module translates a host build system target triple (for example
``aarch64-unknown-linux-gnu``) into the Go toolchain environment: GOOS,
GOARCH, GOARM, CGO_ENABLED and the C compiler used by cgo.

Unknown triples fail with a ConfigurationError naming the triple; there is
no silent fallback to the host platform.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from gobuildkit.core.environment import HostEnvironment
from gobuildkit.core.exceptions import ConfigurationError, ToolchainNotFound
from gobuildkit.core.filesystem import find_executable

logger = logging.getLogger(__name__)

# Exact architecture names -> GOARCH
ARCH_MAP: Dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x86": "386",
    "i386": "386",
    "i586": "386",
    "i686": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "mips": "mips",
    "mipsel": "mipsle",
    "mips64": "mips64",
    "mips64el": "mips64le",
    "powerpc64": "ppc64",
    "powerpc64le": "ppc64le",
    "s390x": "s390x",
    "loongarch64": "loong64",
    "wasm32": "wasm",
}

# 32-bit ARM prefixes -> GOARM, longest prefix first
ARM_PREFIXES: List[Tuple[str, str]] = [
    ("thumbv7", "7"),
    ("armv7", "7"),
    ("armv6", "6"),
    ("armv5", "5"),
    ("arm", "6"),
]

# Triple components -> GOOS
OS_MAP: Dict[str, str] = {
    "linux": "linux",
    "darwin": "darwin",
    "macos": "darwin",
    "ios": "ios",
    "windows": "windows",
    "freebsd": "freebsd",
    "netbsd": "netbsd",
    "openbsd": "openbsd",
    "dragonfly": "dragonfly",
    "illumos": "illumos",
    "solaris": "solaris",
    "wasi": "wasip1",
    "wasip1": "wasip1",
}

VENDORS = {"unknown", "pc", "apple", "none"}


@dataclass(frozen=True)
class TargetSpec:
    """
    Resolved Go target.

    Derived once per build and never mutated afterward.

    Attributes:
        triple: Host build system triple this target was resolved from
        goos: Go operating system identifier
        goarch: Go architecture identifier
        goarm: ARM version for 32-bit ARM targets
        cgo_enabled: Whether cgo interop is enabled
        cc: C compiler used by cgo (only when cgo is enabled)
    """

    triple: str
    goos: str
    goarch: str
    goarm: Optional[str] = None
    cgo_enabled: bool = True
    cc: Optional[str] = None

    def to_env(self) -> Dict[str, str]:
        """Environment variables that select this target for `go build`."""
        env = {
            "GOOS": self.goos,
            "GOARCH": self.goarch,
            "CGO_ENABLED": "1" if self.cgo_enabled else "0",
        }
        if self.goarm:
            env["GOARM"] = self.goarm
        if self.cgo_enabled and self.cc:
            env["CC"] = self.cc
        return env

    def to_dict(self) -> dict:
        return {
            "triple": self.triple,
            "goos": self.goos,
            "goarch": self.goarch,
            "goarm": self.goarm,
            "cgo_enabled": self.cgo_enabled,
            "cc": self.cc,
        }

    def __str__(self) -> str:
        return f"{self.goos}/{self.goarch}"


def split_triple(triple: str) -> List[str]:
    """Split a triple on '-' or '/' into its components."""
    return [part for part in re.split(r"[-/]", triple.strip()) if part]


def map_arch(arch: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Map a triple architecture component to (GOARCH, GOARM).

    Returns (None, None) for unknown architectures.

    Example:
        >>> map_arch("armv7")
        ('arm', '7')
        >>> map_arch("x86_64")
        ('amd64', None)
    """
    if arch in ARCH_MAP:
        return ARCH_MAP[arch], None
    if arch.startswith("riscv64"):
        return "riscv64", None
    for prefix, goarm in ARM_PREFIXES:
        if arch.startswith(prefix):
            return "arm", goarm
    return None, None


def map_os(components: List[str]) -> Optional[str]:
    """Map the non-architecture triple components to GOOS, or None."""
    # android triples also carry "linux" (aarch64-linux-android)
    if any(c.startswith("android") for c in components):
        return "android"
    for component in components:
        if component in OS_MAP:
            return OS_MAP[component]
        if component.startswith("macosx"):
            return "darwin"
    return None


class TargetResolver:
    """
    Resolve host build system triples into TargetSpec values.

    Example:
        >>> resolver = TargetResolver(HostEnvironment.from_mapping({"PATH": "/usr/bin"}))
        >>> spec = resolver.resolve("x86_64-unknown-linux-gnu", interop=False)
        >>> spec.goos, spec.goarch
        ('linux', 'amd64')
    """

    def __init__(self, host_env: HostEnvironment):
        self.host_env = host_env

    def resolve(
        self,
        triple: Optional[str],
        interop: bool = True,
        cc: Optional[str] = None,
        goos: Optional[str] = None,
        goarch: Optional[str] = None,
    ) -> TargetSpec:
        """
        Resolve a triple into a TargetSpec.

        Args:
            triple: Target triple (None to rely entirely on goos/goarch)
            interop: Locate a C compiler and enable cgo
            cc: Explicit C compiler, skipping host inputs and PATH search
            goos: Explicit GOOS overriding the triple mapping
            goarch: Explicit GOARCH overriding the triple mapping

        Raises:
            ConfigurationError: If the triple is missing or unsupported
            ToolchainNotFound: If interop is requested and no C compiler exists
        """
        goarm = None
        if triple is None:
            if not (goos and goarch):
                raise ConfigurationError(
                    "No target triple available. Set TARGET (or "
                    "CARGO_CFG_TARGET_ARCH and CARGO_CFG_TARGET_OS), or "
                    "configure goos and goarch explicitly."
                )
            triple = f"{goarch}-{goos}"
        else:
            components = split_triple(triple)
            if not components:
                raise ConfigurationError(f"Unsupported target triple: {triple!r}")

            if goarch is None:
                goarch, goarm = map_arch(components[0])
                if goarch is None:
                    raise ConfigurationError(
                        f"Unsupported target triple: {triple} "
                        f"(unknown architecture {components[0]!r})"
                    )
            if goos is None:
                goos = map_os(components[1:])
                if goos is None:
                    raise ConfigurationError(
                        f"Unsupported target triple: {triple} (unknown operating system)"
                    )

        compiler = None
        if interop:
            compiler = self.find_c_compiler(triple, goos, cc)

        spec = TargetSpec(
            triple=triple,
            goos=goos,
            goarch=goarch,
            goarm=goarm,
            cgo_enabled=interop,
            cc=compiler,
        )
        logger.debug(f"Resolved target {triple} -> {spec} (cc={compiler})")
        return spec

    def is_native(self, triple: str) -> bool:
        host = self.host_env.host
        return host is None or host == triple

    def find_c_compiler(self, triple: str, goos: str, override: Optional[str] = None) -> str:
        """
        Locate the C compiler cgo should use.

        Lookup order: explicit override, host inputs (CC_<triple>,
        TARGET_CC, CC), then PATH candidates.

        Raises:
            ToolchainNotFound: If no candidate is found
        """
        if override:
            return override

        key, value = self.host_env.c_compiler_override(triple)
        if value:
            logger.debug(f"Using C compiler from {key}: {value}")
            return value

        candidates = self.compiler_candidates(triple, goos)
        for name in candidates:
            found = find_executable(name, path_env=self.host_env.path)
            if found:
                return str(found)

        raise ToolchainNotFound(
            "cc",
            f"could not find c compiler for target {triple} "
            f"(tried {', '.join(candidates)}); set CC or TARGET_CC",
        )

    def compiler_candidates(self, triple: str, goos: str) -> List[str]:
        if self.is_native(triple):
            return ["cc", "gcc", "clang"]

        components = split_triple(triple)
        # "x86_64/linux" names a compiler as x86_64-linux-gcc
        normalized = "-".join(components)
        arch = components[0]
        if arch.startswith(("armv", "thumbv")):
            arch = "arm"
        gnu = "-".join([arch] + [c for c in components[1:] if c not in VENDORS])

        candidates = [f"{normalized}-gcc"]
        if gnu != normalized:
            candidates.append(f"{gnu}-gcc")
        if goos == "windows" and "gnu" in components:
            candidates.append(f"{arch}-w64-mingw32-gcc")
        if goos in ("darwin", "ios"):
            candidates.append("clang")
        return candidates


__all__ = [
    "TargetSpec",
    "TargetResolver",
    "ARCH_MAP",
    "OS_MAP",
    "map_arch",
    "map_os",
    "split_triple",
]
