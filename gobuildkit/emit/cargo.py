"""Cargo build-script adapter.

Cargo reads `cargo:KEY=VALUE` lines from a build script's stdout. This
adapter is the only place that knows that syntax.
"""

import sys
from typing import IO, Iterable, Optional

from gobuildkit.emit.directives import Directive, DirectiveKind


def format_directive(directive: Directive) -> str:
    """
    Render one directive as a Cargo instruction line.

    Example:
        >>> format_directive(Directive(DirectiveKind.LINK_LIB, "hello"))
        'cargo:rustc-link-lib=static=hello'
    """
    kind = directive.kind
    if kind is DirectiveKind.LINK_SEARCH:
        return f"cargo:rustc-link-search=native={directive.value}"
    if kind is DirectiveKind.LINK_LIB:
        link = "static" if directive.static else "dylib"
        return f"cargo:rustc-link-lib={link}={directive.value}"
    if kind is DirectiveKind.HEADER:
        return f"cargo:header={directive.value}"
    if kind is DirectiveKind.RERUN_IF_CHANGED:
        return f"cargo:rerun-if-changed={directive.value}"
    if kind is DirectiveKind.RERUN_IF_ENV_CHANGED:
        return f"cargo:rerun-if-env-changed={directive.value}"
    if kind is DirectiveKind.WARNING:
        return f"cargo:warning={directive.value}"
    raise ValueError(f"Unknown directive kind: {kind}")


class CargoDirectiveWriter:
    """
    Write directives to a build script's stdout.

    Attributes:
        stream: Output stream (default: sys.stdout at write time)
        enabled: When False nothing is written (cargo_metadata(false))
    """

    def __init__(self, stream: Optional[IO[str]] = None, enabled: bool = True):
        self._stream = stream
        self.enabled = enabled

    @property
    def stream(self) -> IO[str]:
        return self._stream if self._stream is not None else sys.stdout

    def write(self, directives: Iterable[Directive]) -> None:
        if not self.enabled:
            return
        for directive in directives:
            print(format_directive(directive), file=self.stream)
        self.stream.flush()

    def warning(self, line: str) -> None:
        """Forward one compiler diagnostic line as a Cargo warning."""
        self.write([Directive(DirectiveKind.WARNING, line)])


__all__ = ["CargoDirectiveWriter", "format_directive"]
