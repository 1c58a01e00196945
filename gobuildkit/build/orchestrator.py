"""
Build orchestration.

The orchestrator sequences one library build:

    validate -> resolve target -> fingerprint -> cache lookup
        hit:  emit cached paths
        miss: invoke compiler -> store -> emit

Every build is tracked by a `BuildRun` state machine:

    CONFIGURED -> RESOLVED -> FINGERPRINT_COMPUTED
        -> CACHE_HIT -> COMPLETED
        -> CACHE_MISS -> INVOKING -> COMPILED -> STORED -> COMPLETED
    any non-terminal state -> FAILED

FAILED carries the originating exception, which is re-raised to the caller
unmodified. The output directory lock is held from validation to store.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from gobuildkit.build.sources import Fingerprint, SourceSet, SourceSetBuilder
from gobuildkit.caching.artifact_cache import Artifact, ArtifactCache
from gobuildkit.config.build_config import BuildConfiguration
from gobuildkit.core.environment import WATCHED_VARIABLES, HostEnvironment
from gobuildkit.core.exceptions import BuildIOError, ConfigurationError
from gobuildkit.core.locking import OutputDirectoryLock
from gobuildkit.cross.targets import TargetResolver, TargetSpec
from gobuildkit.emit.cargo import CargoDirectiveWriter
from gobuildkit.emit.directives import Directive, OutputEmitter
from gobuildkit.toolchain.invoker import BuildRequest, GoToolchain, ToolchainInvoker

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".gobuildkit-staging-"


class BuildState(Enum):
    CONFIGURED = "configured"
    RESOLVED = "resolved"
    FINGERPRINT_COMPUTED = "fingerprint-computed"
    CACHE_HIT = "cache-hit"
    CACHE_MISS = "cache-miss"
    INVOKING = "invoking"
    COMPILED = "compiled"
    STORED = "stored"
    COMPLETED = "completed"
    FAILED = "failed"


TRANSITIONS = {
    BuildState.CONFIGURED: {BuildState.RESOLVED},
    BuildState.RESOLVED: {BuildState.FINGERPRINT_COMPUTED},
    BuildState.FINGERPRINT_COMPUTED: {BuildState.CACHE_HIT, BuildState.CACHE_MISS},
    BuildState.CACHE_HIT: {BuildState.COMPLETED},
    BuildState.CACHE_MISS: {BuildState.INVOKING},
    BuildState.INVOKING: {BuildState.COMPILED},
    BuildState.COMPILED: {BuildState.STORED},
    BuildState.STORED: {BuildState.COMPLETED},
    BuildState.COMPLETED: set(),
    BuildState.FAILED: set(),
}


@dataclass
class BuildResult:
    """
    Outcome of a completed build.

    Attributes:
        artifact: Final header and library paths
        out_dir: Output directory holding the artifacts
        fingerprint: Fingerprint of the build inputs
        cache_hit: True when the compiler was not invoked
        target: Resolved target
        directives: Directives emitted for the host build system
    """

    artifact: Artifact
    out_dir: Path
    fingerprint: Fingerprint
    cache_hit: bool
    target: TargetSpec
    directives: List[Directive] = field(default_factory=list)


class BuildRun:
    """State of one build as it moves through the orchestrator."""

    def __init__(self, config: BuildConfiguration):
        self.config = config
        self.state = BuildState.CONFIGURED
        self.history: List[BuildState] = [BuildState.CONFIGURED]
        self.error: Optional[BaseException] = None
        self.result: Optional[BuildResult] = None

    @property
    def finished(self) -> bool:
        return self.state in (BuildState.COMPLETED, BuildState.FAILED)

    def advance(self, state: BuildState) -> None:
        if state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid build transition {self.state.name} -> {state.name}")
        logger.debug(f"{self.config.output_name}: {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)

    def fail(self, error: BaseException) -> None:
        if self.finished:
            return
        self.error = error
        self.state = BuildState.FAILED
        self.history.append(BuildState.FAILED)

    def complete(self, result: BuildResult) -> None:
        self.advance(BuildState.COMPLETED)
        self.result = result


class BuildOrchestrator:
    """
    Public entry point that runs builds.

    Args:
        host_env: Host build system inputs (default: process environment)
        toolchain: Toolchain to use for every build (default: a GoToolchain
            per configured compiler)
        writer: Directive writer (default: Cargo syntax on stdout)
        lock_timeout: Seconds to wait for the output directory lock

    Example:
        >>> orchestrator = BuildOrchestrator()
        >>> result = orchestrator.run(BuildConfiguration("hello", sources=(Path("hello.go"),)))
        >>> result.artifact.archive
        PosixPath('/target/debug/build/demo-1234/out/libhello.a')
    """

    def __init__(
        self,
        host_env: Optional[HostEnvironment] = None,
        toolchain: Optional[ToolchainInvoker] = None,
        writer: Optional[CargoDirectiveWriter] = None,
        lock_timeout: float = 300,
    ):
        self.host_env = host_env or HostEnvironment.from_mapping()
        self.toolchain = toolchain
        self.writer = writer or CargoDirectiveWriter()
        self.lock_timeout = lock_timeout
        self.resolver = TargetResolver(self.host_env)
        self.sources = SourceSetBuilder()
        self.emitter = OutputEmitter()
        self.last_run: Optional[BuildRun] = None
        self._toolchains: Dict[str, ToolchainInvoker] = {}
        self._claims: Dict[Tuple[Path, str], Dict[str, Any]] = {}

    def run(self, config: BuildConfiguration) -> BuildResult:
        """
        Build a configuration, reusing cached artifacts when possible.

        Raises:
            ConfigurationError: Invalid sources, output name or target
            ToolchainNotFound: Missing Go or C compiler
            CompilationFailed: The compiler exited nonzero
            BuildIOError: The output directory cannot be written
            LockTimeout: Another build kept the output directory locked
        """
        run = BuildRun(config)
        self.last_run = run
        try:
            result = self._execute(run, config)
        except BaseException as e:
            run.fail(e)
            raise
        return result

    def _execute(self, run: BuildRun, config: BuildConfiguration) -> BuildResult:
        out_dir = self._out_dir(config)
        self._check_claim(out_dir, config)

        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildIOError(f"Cannot create output directory {out_dir}: {e}") from e

        with OutputDirectoryLock(out_dir).hold(timeout=self.lock_timeout):
            source_set = self.sources.build(config)
            target = self.resolver.resolve(
                self.host_env.target,
                interop=config.interop,
                cc=config.cc,
                goos=config.goos,
                goarch=config.goarch,
            )
            run.advance(BuildState.RESOLVED)

            toolchain = self._toolchain_for(config)
            version = toolchain.version()
            fingerprint = self.sources.fingerprint(
                source_set, config, target, version, env=self.host_env.build_variables()
            )
            run.advance(BuildState.FINGERPRINT_COMPUTED)

            cache = ArtifactCache(out_dir, config.output_name)
            entry = cache.lookup(fingerprint)
            if entry is not None:
                run.advance(BuildState.CACHE_HIT)
                logger.info(f"{config.output_name} is up to date ({fingerprint.short})")
                artifact = entry.artifact
            else:
                run.advance(BuildState.CACHE_MISS)
                cache.invalidate()
                artifact = self._compile(
                    run,
                    config,
                    toolchain,
                    target,
                    source_set,
                    cache,
                    fingerprint,
                    version,
                    out_dir,
                )

        directives = self.emitter.directives(
            artifact,
            out_dir,
            config.output_name,
            mode=config.mode,
            watched=source_set.watched_paths(),
            env_keys=self._rerun_env_keys(target),
        )
        if config.emit_metadata:
            self.writer.write(directives)

        result = BuildResult(
            artifact=artifact,
            out_dir=out_dir,
            fingerprint=fingerprint,
            cache_hit=run.state is BuildState.CACHE_HIT,
            target=target,
            directives=directives,
        )
        run.complete(result)
        self._claim(out_dir, config)
        return result

    def _compile(
        self,
        run: BuildRun,
        config: BuildConfiguration,
        toolchain: ToolchainInvoker,
        target: TargetSpec,
        source_set: SourceSet,
        cache: ArtifactCache,
        fingerprint: Fingerprint,
        version: str,
        out_dir: Path,
    ) -> Artifact:
        try:
            staging_dir = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=out_dir))
        except OSError as e:
            raise BuildIOError(f"Cannot write to output directory {out_dir}: {e}") from e

        try:
            request = BuildRequest(
                config=config,
                target=target,
                sources=source_set,
                staging_dir=staging_dir,
                base_env=self.host_env.variables,
            )
            run.advance(BuildState.INVOKING)
            logger.info(f"Compiling {config.output_name} for {target}")
            staged = toolchain.build(request, on_output=self._output_handler(config))
            run.advance(BuildState.COMPILED)

            entry = cache.store(
                fingerprint,
                staged,
                config.header_name,
                config.library_name(target.goos),
                version,
            )
            run.advance(BuildState.STORED)
            return entry.artifact
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

    def _out_dir(self, config: BuildConfiguration) -> Path:
        out_dir = config.out_dir or self.host_env.out_dir
        if out_dir is None:
            raise ConfigurationError("Environment variable OUT_DIR not defined.")
        return Path(out_dir).absolute()

    def _check_claim(self, out_dir: Path, config: BuildConfiguration) -> None:
        previous = self._claims.get((out_dir, config.output_name))
        if previous is not None and previous != _claim_identity(config):
            raise ConfigurationError(
                f"Output name {config.output_name!r} is already used in {out_dir} "
                "by a different build configuration"
            )

    def _claim(self, out_dir: Path, config: BuildConfiguration) -> None:
        # Only completed builds own their name
        self._claims[(out_dir, config.output_name)] = _claim_identity(config)

    def _toolchain_for(self, config: BuildConfiguration) -> ToolchainInvoker:
        if self.toolchain is not None:
            return self.toolchain
        if config.compiler not in self._toolchains:
            self._toolchains[config.compiler] = GoToolchain(config.compiler, self.host_env)
        return self._toolchains[config.compiler]

    def _output_handler(self, config: BuildConfiguration):
        def handle(stream: str, line: str) -> None:
            logger.info(f"[{config.compiler}] {line}")
            if stream == "stderr" and config.emit_metadata and line:
                self.writer.warning(line)

        return handle

    def _rerun_env_keys(self, target: TargetSpec) -> List[str]:
        keys = ["TARGET_CC", "CC", f"CC_{target.triple}"]
        underscored = f"CC_{target.triple.replace('-', '_')}"
        if underscored not in keys:
            keys.append(underscored)
        for key in [*WATCHED_VARIABLES, *self.host_env.build_variables()]:
            if key not in keys:
                keys.append(key)
        return keys


def _claim_identity(config: BuildConfiguration) -> Dict[str, Any]:
    """Settings that decide what a build writes under its output name."""
    identity = config.to_dict()
    identity["sources"] = sorted(source.as_posix() for source in config.sources)
    identity["workdir"] = str(Path(config.workdir).absolute()) if config.workdir else None
    return identity


__all__ = ["BuildState", "BuildRun", "BuildResult", "BuildOrchestrator"]
