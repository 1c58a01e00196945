"""
Artifact cache for built libraries.

The cache is a content-addressed store keyed by Fingerprint. Its index is a
JSON manifest inside the output directory:

    {
      "version": 1,
      "entries": {
        "hello": {
          "fingerprint": "3f1c...",
          "header": "hello.h",
          "archive": "libhello.a",
          "toolchain_version": "go version go1.22.4 linux/amd64",
          "built_at": "2026-01-15T10:30:00+00:00"
        }
      }
    }

A missing, unreadable or structurally invalid manifest is a cache miss,
never a fatal error. Unknown fields are ignored; a missing field or an
unknown format version degrades to a miss.

Crash ordering: `invalidate()` drops the entry before the compiler rewrites
artifacts, and `store()` moves artifacts into place before writing the
manifest, so a crash at any point never reports a hit for incomplete
outputs.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from gobuildkit.core.exceptions import BuildIOError, CacheCorruption
from gobuildkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

MANIFEST_NAME = ".gobuildkit-manifest.json"
MANIFEST_VERSION = 1

_ENTRY_FIELDS = ("fingerprint", "header", "archive", "toolchain_version", "built_at")


@dataclass(frozen=True)
class Artifact:
    """Header and library produced by one successful build."""

    header: Path
    archive: Path


@dataclass(frozen=True)
class CacheEntry:
    """
    Manifest record of the last successful build of one library.

    Attributes:
        fingerprint: Fingerprint hex digest of the build
        header: Path of the C header
        archive: Path of the library
        toolchain_version: Full toolchain version used
        built_at: ISO 8601 build timestamp (UTC)
    """

    fingerprint: str
    header: Path
    archive: Path
    toolchain_version: str
    built_at: str

    @property
    def artifact(self) -> Artifact:
        return Artifact(header=self.header, archive=self.archive)

    def to_dict(self, out_dir: Path) -> Dict[str, str]:
        return {
            "fingerprint": self.fingerprint,
            "header": _relative(self.header, out_dir),
            "archive": _relative(self.archive, out_dir),
            "toolchain_version": self.toolchain_version,
            "built_at": self.built_at,
        }

    @classmethod
    def from_dict(cls, data: Any, out_dir: Path) -> "CacheEntry":
        """
        Parse a manifest record.

        Raises:
            CacheCorruption: If the record is not a mapping or lacks a field
        """
        if not isinstance(data, dict):
            raise CacheCorruption("manifest entry is not a mapping")
        for name in _ENTRY_FIELDS:
            if not isinstance(data.get(name), str):
                raise CacheCorruption(f"manifest entry field missing or invalid: {name}")
        return cls(
            fingerprint=data["fingerprint"],
            header=out_dir / data["header"],
            archive=out_dir / data["archive"],
            toolchain_version=data["toolchain_version"],
            built_at=data["built_at"],
        )


class ArtifactCache:
    """
    Cache of one library's artifacts in one output directory.

    Several libraries may share an output directory; each owns one entry
    of the shared manifest. Callers serialize access with
    `OutputDirectoryLock`.

    Example:
        >>> cache = ArtifactCache(Path('/out'), 'hello')
        >>> entry = cache.lookup(fingerprint)
        >>> if entry is None:
        ...     cache.invalidate()
        ...     staged = toolchain.build(request)
        ...     entry = cache.store(fingerprint, staged, 'hello.h', 'libhello.a', version)
    """

    def __init__(self, out_dir: Path, output_name: str):
        self.out_dir = Path(out_dir)
        self.output_name = output_name
        self.manifest_path = self.out_dir / MANIFEST_NAME

    def lookup(self, fingerprint) -> Optional[CacheEntry]:
        """
        Find a reusable build for a fingerprint.

        Returns:
            The cache entry on a hit, None on a miss
        """
        try:
            entries = self._load_entries()
        except CacheCorruption as e:
            logger.warning(f"Ignoring unusable cache manifest {self.manifest_path}: {e}")
            return None

        if entries is None:
            if any(self.out_dir.glob(f"lib{self.output_name}.*")):
                logger.warning(
                    f"Cache manifest {self.manifest_path} is missing, rebuilding "
                    f"{self.output_name}"
                )
            else:
                logger.debug(f"No cache manifest in {self.out_dir}")
            return None

        if self.output_name not in entries:
            logger.debug(f"No cache entry for {self.output_name}")
            return None

        try:
            entry = CacheEntry.from_dict(entries[self.output_name], self.out_dir)
        except CacheCorruption as e:
            logger.warning(f"Ignoring cache entry for {self.output_name}: {e}")
            return None

        if entry.fingerprint != str(fingerprint):
            logger.info(f"Inputs of {self.output_name} changed, rebuilding")
            return None

        missing = [p for p in (entry.header, entry.archive) if not p.is_file()]
        if missing:
            logger.warning(
                f"Cached artifacts of {self.output_name} are missing "
                f"({', '.join(str(p) for p in missing)}), rebuilding"
            )
            return None

        return entry

    def invalidate(self) -> None:
        """Drop this library's entry before its artifacts are rewritten."""
        try:
            entries = self._load_entries()
        except CacheCorruption:
            entries = None
        if not entries or self.output_name not in entries:
            return
        del entries[self.output_name]
        self._write_entries(entries)
        logger.debug(f"Invalidated cache entry for {self.output_name}")

    def store(
        self,
        fingerprint,
        staged: Artifact,
        header_name: str,
        library_name: str,
        toolchain_version: str,
    ) -> CacheEntry:
        """
        Move staged artifacts into place, then record them in the manifest.

        Args:
            fingerprint: Fingerprint of the build
            staged: Artifact as produced by the compiler
            header_name: Final header file name inside the output directory
            library_name: Final library file name inside the output directory
            toolchain_version: Full toolchain version used

        Returns:
            The stored cache entry

        Raises:
            BuildIOError: If the output directory cannot be written
        """
        header = self.out_dir / header_name
        archive = self.out_dir / library_name
        try:
            os.replace(staged.archive, archive)
            os.replace(staged.header, header)
        except OSError as e:
            raise BuildIOError(f"Failed to move artifacts into {self.out_dir}: {e}") from e

        entry = CacheEntry(
            fingerprint=str(fingerprint),
            header=header,
            archive=archive,
            toolchain_version=toolchain_version,
            built_at=datetime.now(timezone.utc).isoformat(),
        )

        try:
            entries = self._load_entries() or {}
        except CacheCorruption as e:
            logger.warning(f"Replacing unusable cache manifest {self.manifest_path}: {e}")
            entries = {}
        entries[self.output_name] = entry.to_dict(self.out_dir)
        self._write_entries(entries)

        logger.debug(f"Stored cache entry for {self.output_name}: {entry.fingerprint[:12]}")
        return entry

    def _load_entries(self) -> Optional[Dict[str, Any]]:
        """
        Read the manifest entries.

        Returns:
            Entries mapping, or None if there is no manifest

        Raises:
            CacheCorruption: If the manifest cannot be used
        """
        try:
            with open(self.manifest_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CacheCorruption(f"cannot read manifest: {e}") from e
        except json.JSONDecodeError as e:
            raise CacheCorruption(f"invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise CacheCorruption("manifest root is not a mapping")
        if data.get("version") != MANIFEST_VERSION:
            raise CacheCorruption(f"unsupported manifest version {data.get('version')!r}")
        entries = data.get("entries")
        if not isinstance(entries, dict):
            raise CacheCorruption("manifest has no entries mapping")
        return entries

    def _write_entries(self, entries: Dict[str, Any]) -> None:
        data = {"version": MANIFEST_VERSION, "entries": entries}
        try:
            atomic_write(self.manifest_path, json.dumps(data, indent=2, sort_keys=True))
        except OSError as e:
            raise BuildIOError(f"Failed to write cache manifest {self.manifest_path}: {e}") from e


def _relative(path: Path, out_dir: Path) -> str:
    try:
        return path.relative_to(out_dir).as_posix()
    except ValueError:
        return str(path)


__all__ = ["Artifact", "CacheEntry", "ArtifactCache", "MANIFEST_NAME", "MANIFEST_VERSION"]
