"""
Unit tests for the host environment snapshot.
"""

from pathlib import Path

import pytest

from gobuildkit.core.environment import HostEnvironment, affects_build


class TestSnapshot:
    """Tests for snapshot semantics."""

    def test_copies_mapping(self):
        """Test later changes to the source mapping are not visible."""
        source = {"TARGET": "x86_64-unknown-linux-gnu"}
        host = HostEnvironment.from_mapping(source)
        source["TARGET"] = "aarch64-unknown-linux-gnu"

        assert host.target == "x86_64-unknown-linux-gnu"

    def test_read_only(self):
        """Test the snapshot cannot be mutated."""
        host = HostEnvironment.from_mapping({"CC": "gcc"})

        with pytest.raises(TypeError):
            host.variables["CC"] = "clang"

    def test_defaults_to_process_environment(self, monkeypatch):
        """Test from_mapping() snapshots os.environ."""
        monkeypatch.setenv("OUT_DIR", "/tmp/gobuildkit-out")

        assert HostEnvironment.from_mapping().out_dir == Path("/tmp/gobuildkit-out")

    def test_empty_values_are_unset(self):
        """Test empty strings count as missing."""
        host = HostEnvironment.from_mapping({"OUT_DIR": "", "TARGET": ""})

        assert host.out_dir is None
        assert host.target is None
        assert host.get("OUT_DIR", "fallback") == "fallback"

    def test_to_dict_is_mutable_copy(self):
        """Test to_dict returns an independent dictionary."""
        host = HostEnvironment.from_mapping({"PATH": "/usr/bin"})
        env = host.to_dict()
        env["PATH"] = "/bin"

        assert host.path == "/usr/bin"


class TestTarget:
    """Tests for target triple lookup."""

    def test_target_variable(self):
        """Test TARGET is used when present."""
        host = HostEnvironment.from_mapping({"TARGET": "aarch64-apple-darwin"})

        assert host.target == "aarch64-apple-darwin"

    def test_cargo_cfg_fallback(self):
        """Test CARGO_CFG_TARGET_* build a triple when TARGET is missing."""
        host = HostEnvironment.from_mapping(
            {"CARGO_CFG_TARGET_ARCH": "aarch64", "CARGO_CFG_TARGET_OS": "linux"}
        )

        assert host.target == "aarch64-unknown-linux"

    def test_no_target(self):
        """Test None when nothing describes the target."""
        assert HostEnvironment.from_mapping({}).target is None


class TestCCompilerOverride:
    """Tests for C compiler lookup order."""

    TRIPLE = "aarch64-unknown-linux-gnu"

    def test_triple_specific_first(self):
        """Test CC_<triple> wins over every other variable."""
        host = HostEnvironment.from_mapping(
            {
                f"CC_{self.TRIPLE}": "aarch64-gcc",
                "CC_aarch64_unknown_linux_gnu": "underscored-gcc",
                "TARGET_CC": "target-gcc",
                "CC": "gcc",
            }
        )

        assert host.c_compiler_override(self.TRIPLE) == (f"CC_{self.TRIPLE}", "aarch64-gcc")

    def test_underscored_triple(self):
        """Test CC_<triple with underscores> is second."""
        host = HostEnvironment.from_mapping(
            {"CC_aarch64_unknown_linux_gnu": "underscored-gcc", "CC": "gcc"}
        )

        assert host.c_compiler_override(self.TRIPLE) == (
            "CC_aarch64_unknown_linux_gnu",
            "underscored-gcc",
        )

    def test_target_cc_before_cc(self):
        """Test TARGET_CC wins over CC."""
        host = HostEnvironment.from_mapping({"TARGET_CC": "target-gcc", "CC": "gcc"})

        assert host.c_compiler_override(self.TRIPLE) == ("TARGET_CC", "target-gcc")

    def test_nothing_set(self):
        """Test (None, None) without any override."""
        host = HostEnvironment.from_mapping({})

        assert host.c_compiler_override(self.TRIPLE) == (None, None)


class TestBuildVariables:
    """Tests for inherited variables that change the build output."""

    @pytest.mark.parametrize(
        "key",
        ["CGO_CFLAGS", "CGO_LDFLAGS", "GOFLAGS", "GOAMD64", "GO386", "GOEXPERIMENT", "CC", "PKG_CONFIG_PATH"],
    )
    def test_affects_build(self, key):
        """Test compiler and cgo settings are recognized."""
        assert affects_build(key)

    @pytest.mark.parametrize(
        "key", ["HOME", "PATH", "GOCACHE", "GOMODCACHE", "GOOGLE_APPLICATION_CREDENTIALS", "OUT_DIR"]
    )
    def test_ignored(self, key):
        """Test unrelated and cache-location variables are skipped."""
        assert not affects_build(key)

    def test_sorted_subset(self):
        """Test only build variables are returned, sorted by name."""
        host = HostEnvironment.from_mapping(
            {"HOME": "/root", "GOFLAGS": "-trimpath", "CGO_CFLAGS": "-O2", "GOCACHE": "/c"}
        )

        assert list(host.build_variables().items()) == [
            ("CGO_CFLAGS", "-O2"),
            ("GOFLAGS", "-trimpath"),
        ]
