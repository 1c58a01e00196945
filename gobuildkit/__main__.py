"""
Command-line adapter for build scripts.

Usage: python -m gobuildkit [--config gobuild.yaml] [--verbose | --quiet]

Host inputs (TARGET, OUT_DIR, CC, ...) are read from the process
environment. Cargo directives go to stdout; logs go to stderr.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from gobuildkit import __version__
from gobuildkit.build.orchestrator import BuildOrchestrator
from gobuildkit.config.parser import DEFAULT_CONFIG_NAME, parse_config
from gobuildkit.core.environment import HostEnvironment
from gobuildkit.core.exceptions import GoBuildKitError, LockTimeout

logger = logging.getLogger(__name__)


class CLI:
    """gobuildkit command-line interface."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="gobuildkit",
            description="Compile Go code into a C library for a build script",
        )
        parser.add_argument(
            "--version", action="version", version=f"gobuildkit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            default=Path(DEFAULT_CONFIG_NAME),
            help=f"Path to configuration file (default: ./{DEFAULT_CONFIG_NAME})",
        )
        return parser

    def run(self, args: Optional[List[str]] = None, environ=None) -> int:
        """
        Run one build.

        Args:
            args: Arguments to parse (uses sys.argv if None)
            environ: Host inputs (uses os.environ if None)

        Returns:
            Exit code (0 for success, 1 for a build error)
        """
        parsed_args = self.parser.parse_args(args)
        self._configure_logging(parsed_args)

        host_env = HostEnvironment.from_mapping(os.environ if environ is None else environ)
        try:
            config = parse_config(parsed_args.config)
            BuildOrchestrator(host_env=host_env).run(config)
        except KeyboardInterrupt:
            logger.info("Build cancelled by user")
            return 130
        except (GoBuildKitError, LockTimeout) as e:
            print(f"\n\nerror occurred: {e}\n\n", file=sys.stderr)
            return 1
        return 0

    def _configure_logging(self, args):
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stderr,
            force=True,
        )


def main():
    """Main entry point for the command line."""
    sys.exit(CLI().run())


if __name__ == "__main__":
    main()
