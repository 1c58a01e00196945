"""
Tests for the fluent Build builder.
"""

from pathlib import Path

import pytest

from gobuildkit.build.builder import Build
from gobuildkit.config.build_config import BuildMode
from gobuildkit.core.exceptions import ConfigurationError


class TestConfiguration:
    """Tests for option collection."""

    def test_defaults(self):
        """Test an empty builder uses the documented defaults."""
        config = Build().file("hello.go").configuration("hello")

        assert config.sources == (Path("hello.go"),)
        assert config.mode is BuildMode.C_ARCHIVE
        assert config.interop is True
        assert config.emit_metadata is True
        assert config.compiler == "go"

    def test_chaining(self, tmp_path):
        """Test every setter returns the builder."""
        config = (
            Build()
            .files(["a.go", "b.go"])
            .file("c.go")
            .env("GOFLAGS", "-mod=vendor")
            .env("GOFLAGS", "-mod=mod")
            .out_dir(tmp_path / "out")
            .workdir(tmp_path)
            .buildmode("c-shared")
            .compiler("/opt/go/bin/go")
            .goos("linux")
            .goarch("arm64")
            .cargo_metadata(False)
            .ldflags("-s -w")
            .trim_paths(True)
            .flag("-tags")
            .flag("netgo")
            .interop(False)
            .timeout(120)
            .cc("clang")
            .configuration("hello")
        )

        assert config.sources == (Path("a.go"), Path("b.go"), Path("c.go"))
        assert config.env_dict() == {"GOFLAGS": "-mod=mod"}
        assert config.out_dir == tmp_path / "out"
        assert config.workdir == tmp_path
        assert config.mode is BuildMode.C_SHARED
        assert config.compiler == "/opt/go/bin/go"
        assert (config.goos, config.goarch) == ("linux", "arm64")
        assert config.emit_metadata is False
        assert config.ldflags == "-s -w"
        assert config.trim_paths is True
        assert config.extra_flags == ("-tags", "netgo")
        assert config.interop is False
        assert config.timeout == 120
        assert config.cc == "clang"

    def test_buildmode_enum(self):
        """Test buildmode accepts the enum directly."""
        config = Build().buildmode(BuildMode.C_SHARED).configuration("hello")

        assert config.mode is BuildMode.C_SHARED

    def test_bad_buildmode(self):
        """Test an unknown mode fails immediately."""
        with pytest.raises(ConfigurationError):
            Build().buildmode("exe")

    def test_package(self):
        """Test a package can replace file sources."""
        config = Build().package("./cmd/hello").configuration("hello")

        assert config.package == "./cmd/hello"
        assert config.sources == ()

    def test_bad_output_name(self):
        """Test output names are validated on compile."""
        with pytest.raises(ConfigurationError):
            Build().file("hello.go").configuration("lib/hello")


class TestCompile:
    """Tests for Build.compile."""

    def test_compile_uses_orchestrator(
        self, orchestrator, recording_toolchain, go_project, out_dir, directive_stream
    ):
        """Test compile runs a full build through the orchestrator."""
        result = Build(orchestrator).workdir(go_project).file("hello.go").compile("hello")

        assert recording_toolchain.build_count == 1
        assert result.artifact.archive == out_dir / "libhello.a"
        assert "cargo:rustc-link-lib=static=hello" in directive_stream.getvalue()

    def test_compile_twice_hits_cache(self, orchestrator, recording_toolchain, go_project):
        """Test compiling the same builder twice reuses the artifacts."""
        build = Build(orchestrator).workdir(go_project).file("hello.go")
        build.compile("hello")
        result = build.compile("hello")

        assert result.cache_hit is True
        assert recording_toolchain.build_count == 1
