"""
Build configuration for gobuildkit.

This package contains the immutable build configuration model and the
YAML loader used by the command-line adapter.
"""

from gobuildkit.config.build_config import (
    BuildConfiguration,
    BuildMode,
    library_file_name,
)
from gobuildkit.config.parser import DEFAULT_CONFIG_NAME, parse_config, parse_config_data

__all__ = [
    "BuildConfiguration",
    "BuildMode",
    "library_file_name",
    "DEFAULT_CONFIG_NAME",
    "parse_config",
    "parse_config_data",
]
