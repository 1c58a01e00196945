"""
Fluent builder for compiling Go code from a build script.

It's like the `cc` crate for Go:

    from gobuildkit import Build

    Build().file("hello.go").compile("hello")

This produces `libhello.a` and `hello.h` in the output directory and
prints the directives that tell Cargo how to link them.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from gobuildkit.build.orchestrator import BuildOrchestrator, BuildResult
from gobuildkit.config.build_config import BuildConfiguration, BuildMode

PathLike = Union[str, Path]


class Build:
    """
    A builder for compilation of a Go project.

    Every setter returns the builder so calls can be chained; `compile`
    finishes the build. Options not set here fall back to the host build
    system inputs (OUT_DIR, TARGET, CC, ...).
    """

    def __init__(self, orchestrator: Optional[BuildOrchestrator] = None):
        self._orchestrator = orchestrator
        self._files: List[Path] = []
        self._package: Optional[str] = None
        self._env: Dict[str, str] = {}
        self._out_dir: Optional[Path] = None
        self._workdir: Optional[Path] = None
        self._mode = BuildMode.C_ARCHIVE
        self._compiler = "go"
        self._goos: Optional[str] = None
        self._goarch: Optional[str] = None
        self._cargo_metadata = True
        self._ldflags: Optional[str] = None
        self._trim_paths = False
        self._flags: List[str] = []
        self._interop = True
        self._timeout: Optional[float] = None
        self._cc: Optional[str] = None

    def file(self, path: PathLike) -> "Build":
        """Add a file which will be compiled."""
        self._files.append(Path(path))
        return self

    def files(self, paths: Iterable[PathLike]) -> "Build":
        """Add files which will be compiled."""
        for path in paths:
            self.file(path)
        return self

    def package(self, package: str) -> "Build":
        """Compile a package (import path or ./dir) instead of listed files."""
        self._package = package
        return self

    def env(self, key: str, value: str) -> "Build":
        """Inserts or updates an environment variable for the compiler."""
        self._env[key] = value
        return self

    def out_dir(self, out_dir: PathLike) -> "Build":
        """
        Configures the output directory where the library and header go.

        Taken from the OUT_DIR environment variable of build scripts, so
        it's not required to call this function.
        """
        self._out_dir = Path(out_dir)
        return self

    def workdir(self, workdir: PathLike) -> "Build":
        """Directory the compiler runs in and relative sources resolve from."""
        self._workdir = Path(workdir)
        return self

    def buildmode(self, mode: Union[BuildMode, str]) -> "Build":
        """Configures the build mode. c-archive is used by default."""
        self._mode = mode if isinstance(mode, BuildMode) else BuildMode.parse(mode)
        return self

    def compiler(self, compiler: PathLike) -> "Build":
        """Configures the go command to use. Default: `go`."""
        self._compiler = str(compiler)
        return self

    def goos(self, goos: str) -> "Build":
        """Sets GOOS instead of deriving it from the target triple."""
        self._goos = goos
        return self

    def goarch(self, goarch: str) -> "Build":
        """Sets GOARCH instead of deriving it from the target triple."""
        self._goarch = goarch
        return self

    def cargo_metadata(self, enabled: bool) -> "Build":
        """
        Define whether directives are printed for Cargo. Defaults to True.

        The emitted metadata is:
         - rustc-link-lib=static=<compiled lib>
         - rustc-link-search=native=<output directory>
        """
        self._cargo_metadata = enabled
        return self

    def ldflags(self, ldflags: str) -> "Build":
        """Set the linker flags to pass to the go build."""
        self._ldflags = ldflags
        return self

    def trim_paths(self, trim_paths: bool) -> "Build":
        """Remove all file system paths from the resulting library (-trimpath)."""
        self._trim_paths = trim_paths
        return self

    def flag(self, flag: str) -> "Build":
        """Add an extra `go build` flag."""
        self._flags.append(flag)
        return self

    def interop(self, enabled: bool) -> "Build":
        """Enable or disable cgo (CGO_ENABLED)."""
        self._interop = enabled
        return self

    def timeout(self, seconds: Optional[float]) -> "Build":
        """Terminate the compiler after this many seconds."""
        self._timeout = seconds
        return self

    def cc(self, cc: PathLike) -> "Build":
        """C compiler for cgo, overriding CC and PATH lookup."""
        self._cc = str(cc)
        return self

    def configuration(self, output: str) -> BuildConfiguration:
        """Freeze the current options into a BuildConfiguration."""
        return BuildConfiguration(
            output_name=output,
            sources=tuple(self._files),
            package=self._package,
            env=tuple(self._env.items()),
            interop=self._interop,
            extra_flags=tuple(self._flags),
            mode=self._mode,
            compiler=self._compiler,
            goos=self._goos,
            goarch=self._goarch,
            ldflags=self._ldflags,
            trim_paths=self._trim_paths,
            emit_metadata=self._cargo_metadata,
            out_dir=self._out_dir,
            workdir=self._workdir,
            timeout=self._timeout,
            cc=self._cc,
        )

    def compile(self, output: str) -> BuildResult:
        """
        Run the compiler, generating lib<output>.a and <output>.h.

        Raises:
            GoBuildKitError: If the configuration is invalid or compilation fails
        """
        config = self.configuration(output)
        if self._orchestrator is None:
            self._orchestrator = BuildOrchestrator()
        return self._orchestrator.run(config)


__all__ = ["Build"]
