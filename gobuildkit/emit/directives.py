"""
Build directives for the host build system.

The emitter turns a finished build into a list of host-neutral directives.
It is a pure formatting step; the textual syntax belongs to adapters such
as `gobuildkit.emit.cargo`.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List

from gobuildkit.caching.artifact_cache import Artifact
from gobuildkit.config.build_config import BuildMode


class DirectiveKind(Enum):
    LINK_SEARCH = "link-search"
    LINK_LIB = "link-lib"
    HEADER = "header"
    RERUN_IF_CHANGED = "rerun-if-changed"
    RERUN_IF_ENV_CHANGED = "rerun-if-env-changed"
    WARNING = "warning"


@dataclass(frozen=True)
class Directive:
    """One instruction for the host build system."""

    kind: DirectiveKind
    value: str
    # Static archive vs shared library, for LINK_LIB only
    static: bool = True


class OutputEmitter:
    """Build the directive list describing a produced artifact."""

    def directives(
        self,
        artifact: Artifact,
        out_dir: Path,
        output_name: str,
        mode: BuildMode = BuildMode.C_ARCHIVE,
        watched: Iterable[Path] = (),
        env_keys: Iterable[str] = (),
    ) -> List[Directive]:
        """
        Directives for one build.

        Args:
            artifact: Final header and library locations
            out_dir: Directory holding the library
            output_name: Library base name to link
            mode: Build mode, deciding static or dynamic linking
            watched: Source paths the host should watch
            env_keys: Host inputs whose change should trigger a rebuild

        Returns:
            Rerun directives first, then link library, search path and header
        """
        directives = [Directive(DirectiveKind.RERUN_IF_CHANGED, str(p)) for p in watched]
        directives.extend(Directive(DirectiveKind.RERUN_IF_ENV_CHANGED, k) for k in env_keys)
        directives.append(
            Directive(
                DirectiveKind.LINK_LIB,
                output_name,
                static=mode is BuildMode.C_ARCHIVE,
            )
        )
        directives.append(Directive(DirectiveKind.LINK_SEARCH, str(out_dir)))
        directives.append(Directive(DirectiveKind.HEADER, str(artifact.header)))
        return directives


__all__ = ["Directive", "DirectiveKind", "OutputEmitter"]
