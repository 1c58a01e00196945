"""YAML configuration parser for gobuildkit.

This module parses `gobuild.yaml` files into a BuildConfiguration for the
command-line adapter.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from gobuildkit.config.build_config import BuildConfiguration, BuildMode
from gobuildkit.core.exceptions import ConfigurationError

DEFAULT_CONFIG_NAME = "gobuild.yaml"

_KNOWN_FIELDS = {
    "version",
    "library",
    "files",
    "package",
    "mode",
    "env",
    "interop",
    "flags",
    "ldflags",
    "trim_paths",
    "compiler",
    "goos",
    "goarch",
    "cc",
    "timeout",
    "cargo_metadata",
    "out_dir",
}


def parse_config(config_path: Path) -> BuildConfiguration:
    """
    Parse a gobuild.yaml configuration file.

    Relative source paths are resolved against the directory containing
    the configuration file, which also becomes the compiler working
    directory.

    Args:
        config_path: Path to gobuild.yaml

    Returns:
        Parsed and validated configuration

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax: {e}")

    if data is None:
        raise ConfigurationError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    return parse_config_data(data, base_dir=config_path.parent.resolve())


def parse_config_data(data: Dict[str, Any], base_dir: Optional[Path] = None) -> BuildConfiguration:
    """Validate a configuration mapping and build a BuildConfiguration."""
    if "version" not in data:
        raise ConfigurationError("Missing required field: version")

    if data["version"] != 1:
        raise ConfigurationError(f"Unsupported version: {data['version']} (expected 1)")

    unknown = sorted(set(data) - _KNOWN_FIELDS)
    if unknown:
        raise ConfigurationError(f"Unknown configuration field(s): {', '.join(unknown)}")

    if "library" not in data or not data["library"]:
        raise ConfigurationError("Missing required field: library")

    files = _string_list(data.get("files", []), "files")
    flags = _string_list(data.get("flags", []), "flags")

    env = data.get("env") or {}
    if not isinstance(env, dict):
        raise ConfigurationError("env must be a mapping")
    env = {str(k): str(v) for k, v in env.items()}

    timeout = data.get("timeout")
    if timeout is not None and not isinstance(timeout, (int, float)):
        raise ConfigurationError(f"timeout must be a number, got {timeout!r}")

    out_dir = data.get("out_dir")
    if out_dir is not None:
        out_dir = Path(out_dir)
        if base_dir is not None and not out_dir.is_absolute():
            out_dir = base_dir / out_dir

    return BuildConfiguration(
        output_name=str(data["library"]),
        sources=tuple(Path(f) for f in files),
        package=data.get("package"),
        env=tuple(env.items()),
        interop=_bool(data, "interop", True),
        extra_flags=tuple(flags),
        mode=BuildMode.parse(data.get("mode", BuildMode.C_ARCHIVE.value)),
        compiler=str(data.get("compiler", "go")),
        goos=data.get("goos"),
        goarch=data.get("goarch"),
        ldflags=data.get("ldflags"),
        trim_paths=_bool(data, "trim_paths", False),
        emit_metadata=_bool(data, "cargo_metadata", True),
        out_dir=out_dir,
        workdir=base_dir,
        timeout=float(timeout) if timeout is not None else None,
        cc=data.get("cc"),
    )


def _string_list(value: Any, name: str) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigurationError(f"{name} must be a list of strings")
    return [str(item) for item in value]


def _bool(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"{key} must be true or false, got {value!r}")
    return value


__all__ = ["parse_config", "parse_config_data", "DEFAULT_CONFIG_NAME"]
