"""
Go toolchain invocation.

`ToolchainInvoker` is the seam between the build orchestrator and the
compiler: `GoToolchain` launches `go build` as a child process, while tests
substitute an implementation that records calls instead.

Example:
    >>> toolchain = GoToolchain("go", HostEnvironment.from_mapping())
    >>> toolchain.version()
    'go version go1.22.4 linux/amd64'
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from gobuildkit.caching.artifact_cache import Artifact
from gobuildkit.config.build_config import BuildConfiguration
from gobuildkit.core.environment import HostEnvironment
from gobuildkit.core.exceptions import (
    CompilationFailed,
    CompilationTimeout,
    ToolchainNotFound,
)
from gobuildkit.core.filesystem import find_executable
from gobuildkit.cross.targets import TargetSpec
from gobuildkit.toolchain.process import OutputCallback, run_process

if TYPE_CHECKING:
    from gobuildkit.build.sources import SourceSet

logger = logging.getLogger(__name__)

VERSION_TIMEOUT = 30


@dataclass(frozen=True)
class BuildRequest:
    """
    Everything one compiler invocation needs.

    Attributes:
        config: Build configuration
        target: Resolved target
        sources: Validated source set
        staging_dir: Directory the compiler writes its outputs to
        base_env: Environment inherited from the host build system
    """

    config: BuildConfiguration
    target: TargetSpec
    sources: "SourceSet"
    staging_dir: Path
    base_env: Mapping[str, str]

    @property
    def archive_path(self) -> Path:
        return self.staging_dir / self.config.library_name(self.target.goos)

    @property
    def header_path(self) -> Path:
        # go names the header after the output file without its extension
        return self.archive_path.with_suffix(".h")

    def environment(self) -> Dict[str, str]:
        """Compiler environment: host inputs, then target, then overrides."""
        env = dict(self.base_env)
        env.update(self.target.to_env())
        env.update(self.config.env_dict())
        return env


class ToolchainInvoker(ABC):
    """Capability to query and run a Go toolchain."""

    @abstractmethod
    def version(self) -> str:
        """Full toolchain version string."""

    @abstractmethod
    def build(
        self, request: BuildRequest, on_output: Optional[OutputCallback] = None
    ) -> Artifact:
        """
        Compile a request into its staging directory.

        Returns:
            Artifact pointing at the staged header and library

        Raises:
            ToolchainNotFound: If the compiler is missing
            CompilationFailed: If the compiler exits nonzero
        """


class GoToolchain(ToolchainInvoker):
    """
    Runs the `go` command.

    Attributes:
        compiler: Executable name or path of the go command
        host_env: Host environment snapshot used for PATH lookup and as the
            compiler base environment
    """

    def __init__(self, compiler: str = "go", host_env: Optional[HostEnvironment] = None):
        self.compiler = compiler
        self.host_env = host_env or HostEnvironment.from_mapping()
        self._version: Optional[str] = None

    def executable(self) -> Path:
        """
        Locate the go command.

        Raises:
            ToolchainNotFound: If it is not on PATH
        """
        found = find_executable(self.compiler, path_env=self.host_env.path)
        if found is None:
            raise ToolchainNotFound(self.compiler)
        return found

    def version(self) -> str:
        """Run `go version` once and remember the full output."""
        if self._version is not None:
            return self._version

        command = [str(self.executable()), "version"]
        try:
            result = run_process(command, self.host_env.to_dict(), timeout=VERSION_TIMEOUT)
        except FileNotFoundError as e:
            raise ToolchainNotFound(self.compiler) from e
        except subprocess.TimeoutExpired as e:
            raise ToolchainNotFound(
                self.compiler, f"{self.compiler} version did not answer within {VERSION_TIMEOUT}s"
            ) from e

        if result.returncode != 0:
            raise ToolchainNotFound(
                self.compiler,
                f"{self.compiler} version exited with {result.returncode}: "
                f"{result.stderr.strip()}",
            )

        self._version = result.stdout.strip()
        logger.debug(f"Toolchain version: {self._version}")
        return self._version

    def command(self, request: BuildRequest) -> List[str]:
        """Assemble the `go build` command line."""
        config = request.config
        command = [
            str(self.executable()),
            "build",
            f"-buildmode={config.mode}",
            "-o",
            str(request.archive_path),
        ]
        if config.ldflags:
            command.extend(["-ldflags", config.ldflags])
        if config.trim_paths:
            command.append("-trimpath")
        command.extend(config.extra_flags)
        command.extend(request.sources.build_args())
        return command

    def build(
        self, request: BuildRequest, on_output: Optional[OutputCallback] = None
    ) -> Artifact:
        command = self.command(request)
        shown = " ".join(command)
        request.staging_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Running {shown}")

        try:
            result = run_process(
                command,
                request.environment(),
                cwd=str(request.sources.workdir),
                timeout=request.config.timeout,
                on_output=on_output,
            )
        except FileNotFoundError as e:
            raise ToolchainNotFound(self.compiler) from e
        except subprocess.TimeoutExpired as e:
            raise CompilationTimeout(e.timeout, e.stderr or "", shown) from e

        if result.returncode != 0:
            raise CompilationFailed(result.returncode, result.stderr, shown)

        artifact = Artifact(header=request.header_path, archive=request.archive_path)
        missing = [str(p) for p in (artifact.archive, artifact.header) if not p.exists()]
        if missing:
            raise CompilationFailed(
                result.returncode,
                result.stderr,
                shown,
                summary=f"Command {shown!r} succeeded but did not produce {', '.join(missing)}.",
            )
        return artifact


__all__ = ["BuildRequest", "ToolchainInvoker", "GoToolchain"]
