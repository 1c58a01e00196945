"""
Source set validation and fingerprinting.

The fingerprint is the central correctness invariant of the artifact cache:
two builds with equal fingerprints produce identical artifacts. It is a
SHA-256 digest over a canonical JSON document holding the source contents,
the build configuration, the resolved target, the full toolchain version
string and the inherited variables that change compiler output.

Source order in the configuration never changes the fingerprint; source
content always does.
"""

import hashlib
import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from gobuildkit.config.build_config import BuildConfiguration
from gobuildkit.core.exceptions import ConfigurationError
from gobuildkit.core.filesystem import FilesystemError, compute_file_hash, iter_files
from gobuildkit.cross.targets import TargetSpec

logger = logging.getLogger(__name__)

FINGERPRINT_FORMAT = 2

# Module files that change how a package builds without being listed
MODULE_FILES = ("go.mod", "go.sum", "go.work", "go.work.sum")

MODULE_DIRECTIVE = re.compile(r'^\s*module\s+"?([^\s"]+)"?', re.MULTILINE)


@dataclass(frozen=True)
class SourceEntry:
    """One validated source: the path as declared and where it resolved to."""

    declared: Path
    resolved: Path
    is_dir: bool

    @property
    def key(self) -> str:
        return self.declared.as_posix()


@dataclass(frozen=True)
class SourceSet:
    """
    Validated inputs of one build.

    Attributes:
        workdir: Directory the compiler runs in
        entries: Validated sources, deduplicated, in declaration order
        package: Package identifier passed to `go build`, if any
        package_dir: Directory holding the package, when it is local or
            inside the enclosing module
        module_root: Directory of the enclosing go.mod, if any
    """

    workdir: Path
    entries: Tuple[SourceEntry, ...]
    package: Optional[str] = None
    package_dir: Optional[Path] = None
    module_root: Optional[Path] = None

    def build_args(self) -> List[str]:
        """Positional `go build` arguments naming what to compile."""
        if self.package:
            return [self.package]
        args = []
        for entry in self.entries:
            text = str(entry.declared)
            if entry.is_dir and not entry.declared.is_absolute() and not text.startswith("."):
                # go treats bare relative names as import paths
                text = f"./{entry.declared.as_posix()}"
            args.append(text)
        return args

    def watched_paths(self) -> List[Path]:
        """Paths the host build system should watch for changes."""
        paths = [entry.resolved for entry in self.entries]
        if self.package_dir is not None and self.package_dir not in paths:
            paths.append(self.package_dir)
        return paths

    def content_digests(self) -> List[Tuple[str, str]]:
        """
        Content digest of every input file, sorted by path.

        Directories expand to every regular file below them.

        Raises:
            ConfigurationError: If a file cannot be read while hashing
        """
        digests: Dict[str, str] = {}
        roots = [(entry.key, entry.resolved, entry.is_dir) for entry in self.entries]
        if self.package_dir is not None:
            roots.append((f"package:{self.package}", self.package_dir, True))

        try:
            for key, path, is_dir in roots:
                if is_dir:
                    for file_path in iter_files(path):
                        rel = file_path.relative_to(path).as_posix()
                        digests[f"{key}/{rel}"] = compute_file_hash(file_path)
                else:
                    digests[key] = compute_file_hash(path)

            module_dir = self.module_root or self.workdir
            for name in MODULE_FILES:
                module_file = module_dir / name
                if module_file.is_file():
                    digests[f"module:{name}"] = compute_file_hash(module_file)
        except (OSError, FilesystemError) as e:
            raise ConfigurationError(f"Cannot read build inputs: {e}") from e

        return sorted(digests.items())


@dataclass(frozen=True)
class Fingerprint:
    """Deterministic digest identifying one combination of inputs."""

    hexdigest: str

    @property
    def short(self) -> str:
        return self.hexdigest[:12]

    def __str__(self) -> str:
        return self.hexdigest


class SourceSetBuilder:
    """
    Validate build inputs and compute fingerprints.

    Args:
        workdir: Default directory relative sources resolve against
            (a configuration's own workdir takes precedence)
    """

    def __init__(self, workdir: Optional[Path] = None):
        self.workdir = workdir

    def build(self, config: BuildConfiguration) -> SourceSet:
        """
        Validate every source of a configuration.

        Every missing or unreadable path is reported, not just the first.

        Raises:
            ConfigurationError: If any source is invalid or nothing is given
        """
        workdir = Path(config.workdir or self.workdir or Path.cwd())
        problems: List[str] = []
        entries: List[SourceEntry] = []
        seen = set()

        for declared in config.sources:
            if declared in seen:
                logger.debug(f"Ignoring duplicate source {declared}")
                continue
            seen.add(declared)

            resolved = declared if declared.is_absolute() else workdir / declared
            problem = _check_readable(resolved, declared)
            if problem:
                problems.append(problem)
                continue
            entries.append(SourceEntry(declared, resolved, resolved.is_dir()))

        module = find_module(workdir)
        package_dir = None
        if config.package:
            package_dir, problem = _resolve_package(config.package, workdir, module)
            if problem:
                problems.append(problem)

        if problems:
            raise ConfigurationError(
                "Invalid source set:\n" + "\n".join(f"  - {p}" for p in problems)
            )

        if not entries and not config.package:
            raise ConfigurationError(
                f"No sources or package configured for library {config.output_name!r}"
            )

        return SourceSet(
            workdir=workdir,
            entries=tuple(entries),
            package=config.package,
            package_dir=package_dir,
            module_root=module[0] if module else None,
        )

    def fingerprint(
        self,
        source_set: SourceSet,
        config: BuildConfiguration,
        target: TargetSpec,
        toolchain_version: str,
        env: Optional[Mapping[str, str]] = None,
    ) -> Fingerprint:
        """
        Compute the fingerprint of a build.

        Args:
            source_set: Validated sources
            config: Build configuration
            target: Resolved target
            toolchain_version: Full `go version` output
            env: Inherited variables that change the output
                (see HostEnvironment.build_variables)
        """
        document = {
            "format": FINGERPRINT_FORMAT,
            "sources": [list(item) for item in source_set.content_digests()],
            "config": config.to_dict(),
            "target": target.to_dict(),
            "toolchain": toolchain_version,
            "environment": sorted([key, value] for key, value in (env or {}).items()),
        }
        encoded = json.dumps(document, sort_keys=True, separators=(",", ":"))
        fingerprint = Fingerprint(hashlib.sha256(encoded.encode("utf-8")).hexdigest())
        logger.debug(
            f"Fingerprint for {config.output_name}: {fingerprint.short} "
            f"({len(document['sources'])} file(s))"
        )
        return fingerprint


def find_module(workdir: Path) -> Optional[Tuple[Path, str]]:
    """
    Find the module enclosing a directory.

    Returns:
        Tuple of (module root, module path), or None outside any module
    """
    for directory in [workdir, *workdir.parents]:
        go_mod = directory / "go.mod"
        if not go_mod.is_file():
            continue
        try:
            match = MODULE_DIRECTIVE.search(go_mod.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read {go_mod}: {e}") from e
        if match is None:
            logger.warning(f"{go_mod} has no module directive")
            return None
        return directory, match.group(1)
    return None


def _resolve_package(
    package: str, workdir: Path, module: Optional[Tuple[Path, str]]
) -> Tuple[Optional[Path], Optional[str]]:
    """
    Find the directory holding a package.

    Local paths resolve against workdir. Import paths inside the enclosing
    module resolve against its root, vendored ones against vendor/. Anything
    else is a dependency pinned by the module files.

    Returns:
        Tuple of (package directory or None, problem or None)
    """
    base = package[: -len("/...")] if package.endswith("/...") else package
    if base.startswith(".") or Path(base).is_absolute():
        candidate = Path(base) if Path(base).is_absolute() else workdir / base
        if candidate.is_dir():
            return candidate, None
        return None, f"Package directory not found: {package}"

    if module is not None:
        root, module_path = module
        if base == module_path or base.startswith(f"{module_path}/"):
            candidate = root / base[len(module_path) :].lstrip("/")
            if candidate.is_dir():
                return candidate, None
            return None, f"Package {package} not found in module {module_path} ({root})"

        vendored = root / "vendor" / base
        if vendored.is_dir():
            return vendored, None

    candidate = workdir / base
    if candidate.is_dir():
        return candidate, None

    logger.debug(f"Package {package} is outside the module, relying on module files")
    return None, None


def _check_readable(resolved: Path, declared: Path) -> Optional[str]:
    if not resolved.exists():
        return f"Source not found: {declared}"
    if not os.access(resolved, os.R_OK):
        return f"Source not readable: {declared}"
    if resolved.is_dir() and not os.access(resolved, os.X_OK):
        return f"Source directory not accessible: {declared}"
    return None


__all__ = ["SourceEntry", "SourceSet", "Fingerprint", "SourceSetBuilder", "find_module"]
