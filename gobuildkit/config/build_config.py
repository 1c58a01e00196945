"""Build configuration model.

A BuildConfiguration is the user-facing aggregate of every option that
controls one `go build` invocation. It is immutable once constructed; the
fluent `Build` builder in `gobuildkit.build.builder` produces one.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from gobuildkit.core.exceptions import ConfigurationError

OUTPUT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.\-]*$")


class BuildMode(Enum):
    """`go build -buildmode` values supported by the engine.

    See `go help buildmode` for more info.
    """

    # Build the listed main package, plus all packages it imports, into a
    # C archive file. The only callable symbols are functions exported
    # with a cgo //export comment.
    C_ARCHIVE = "c-archive"

    # Same as C_ARCHIVE but produces a C shared library.
    C_SHARED = "c-shared"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "BuildMode":
        for mode in cls:
            if mode.value == value:
                return mode
        raise ConfigurationError(
            f"Unsupported build mode: {value} "
            f"(expected one of {[m.value for m in cls]})"
        )


@dataclass(frozen=True)
class BuildConfiguration:
    """
    Complete configuration for one library build.

    Attributes:
        output_name: Library base name; produces lib<name>.a and <name>.h
        sources: Go files or package directories, in declaration order
        package: Package import identifier passed to `go build`
        env: Environment overrides for the compiler, sorted by key
        interop: Whether cgo is enabled (CGO_ENABLED=1 and a C compiler)
        extra_flags: Additional `go build` flags, in order
        mode: Build mode (c-archive by default)
        compiler: Go compiler executable name or path
        goos: Explicit GOOS, bypassing target triple mapping
        goarch: Explicit GOARCH, bypassing target triple mapping
        ldflags: Value passed as `-ldflags`
        trim_paths: Pass `-trimpath`
        emit_metadata: Write directives for the host build system
        out_dir: Output directory (default: host OUT_DIR)
        workdir: Directory the compiler runs in (default: current directory)
        timeout: Compiler timeout in seconds (None: no timeout)
        cc: Explicit C compiler, overriding host inputs and PATH search
    """

    output_name: str
    sources: Tuple[Path, ...] = ()
    package: Optional[str] = None
    env: Tuple[Tuple[str, str], ...] = ()
    interop: bool = True
    extra_flags: Tuple[str, ...] = ()
    mode: BuildMode = BuildMode.C_ARCHIVE
    compiler: str = "go"
    goos: Optional[str] = None
    goarch: Optional[str] = None
    ldflags: Optional[str] = None
    trim_paths: bool = False
    emit_metadata: bool = True
    out_dir: Optional[Path] = None
    workdir: Optional[Path] = None
    timeout: Optional[float] = None
    cc: Optional[str] = None

    def __post_init__(self):
        if not self.output_name or not OUTPUT_NAME_PATTERN.match(self.output_name):
            raise ConfigurationError(
                f"Invalid output name: {self.output_name!r}. "
                "Use letters, digits, '_', '.' or '-' without path separators."
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")

        # Normalize containers so equal configurations compare equal
        object.__setattr__(self, "sources", tuple(Path(s) for s in self.sources))
        object.__setattr__(self, "env", tuple(sorted(dict(self.env).items())))
        object.__setattr__(self, "extra_flags", tuple(self.extra_flags))

    def env_dict(self) -> Dict[str, str]:
        """Environment overrides as a fresh dictionary."""
        return dict(self.env)

    @property
    def header_name(self) -> str:
        return f"{self.output_name}.h"

    def library_name(self, goos: str) -> str:
        """File name of the produced library for the resolved target OS."""
        return library_file_name(self.output_name, self.mode, goos)

    def to_dict(self) -> dict:
        """Fields that influence the produced artifacts, JSON-serializable."""
        return {
            "output_name": self.output_name,
            "package": self.package,
            "env": [list(item) for item in self.env],
            "interop": self.interop,
            "extra_flags": list(self.extra_flags),
            "mode": self.mode.value,
            "compiler": self.compiler,
            "goos": self.goos,
            "goarch": self.goarch,
            "ldflags": self.ldflags,
            "trim_paths": self.trim_paths,
            "cc": self.cc,
        }


def library_file_name(output_name: str, mode: BuildMode, goos: str) -> str:
    """
    Name of the library file produced for a target.

    Example:
        >>> library_file_name("hello", BuildMode.C_ARCHIVE, "linux")
        'libhello.a'
        >>> library_file_name("hello", BuildMode.C_SHARED, "windows")
        'libhello.dll'
    """
    if mode is BuildMode.C_ARCHIVE:
        ext = "a"
    elif goos == "windows":
        ext = "dll"
    elif goos in ("darwin", "ios"):
        ext = "dylib"
    else:
        ext = "so"
    return f"lib{output_name}.{ext}"


__all__ = ["BuildMode", "BuildConfiguration", "library_file_name", "OUTPUT_NAME_PATTERN"]
