"""
Concurrent access control for output directories.

Two build processes writing into the same output directory (for example a
parallel host build graph) must not interleave manifest and artifact
writes. This module provides an advisory exclusive lock scoped to one
output directory.

Features:
- Cross-process locking via the `filelock` library
- Timeout support to prevent hanging
- Owner record (pid, host, time) next to the lock file
- Stale lock detection: a lock whose recorded owner is dead is reclaimed

Usage:
    from gobuildkit.core.locking import OutputDirectoryLock

    lock = OutputDirectoryLock(out_dir)
    with lock.hold(timeout=300):
        # validate, compile, store
        pass
"""

import json
import logging
import os
import socket
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import psutil
from filelock import FileLock, Timeout as LockTimeout

from gobuildkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".gobuildkit.lock"
OWNER_SUFFIX = ".owner"


class OutputDirectoryLock:
    """
    Exclusive lock over one output directory.

    Attributes:
        out_dir: Directory protected by the lock
        lock_path: Path of the lock file
        owner_path: Path of the owner record
    """

    def __init__(self, out_dir: Path):
        self.out_dir = Path(out_dir)
        self.lock_path = self.out_dir / LOCK_FILE_NAME
        self.owner_path = self.out_dir / (LOCK_FILE_NAME + OWNER_SUFFIX)

    @contextmanager
    def hold(self, timeout: float = 300):
        """
        Acquire the lock for the duration of the block.

        The lock is released on every exit path, including exceptions and
        KeyboardInterrupt.

        Args:
            timeout: Maximum wait time in seconds (default: 300)

        Yields:
            None

        Raises:
            LockTimeout: If a live process keeps the lock past the timeout
        """
        self.out_dir.mkdir(parents=True, exist_ok=True)
        lock = self._acquire(timeout)
        try:
            self._write_owner()
            logger.debug(f"Acquired output directory lock: {self.lock_path}")
            yield
        finally:
            self._clear_owner()
            lock.release()
            logger.debug(f"Released output directory lock: {self.lock_path}")

    def _acquire(self, timeout: float) -> FileLock:
        lock = FileLock(self.lock_path, timeout=timeout)
        try:
            lock.acquire()
            return lock
        except LockTimeout:
            if not self.is_stale():
                logger.error(
                    f"Could not acquire output directory lock after {timeout}s. "
                    f"Another build may be writing to {self.out_dir}."
                )
                raise LockTimeout(str(self.lock_path)) from None

        logger.warning(
            f"Reclaiming stale lock {self.lock_path} held by dead process "
            f"{self.owner_pid()}"
        )
        self.reclaim()
        lock = FileLock(self.lock_path, timeout=timeout)
        lock.acquire()
        return lock

    def owner_pid(self) -> Optional[int]:
        """Return the pid recorded by the current lock owner, if any."""
        try:
            with open(self.owner_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            pid = data.get("pid")
            host = data.get("host")
        except (OSError, json.JSONDecodeError, AttributeError):
            return None
        if not isinstance(pid, int) or host != socket.gethostname():
            return None
        return pid

    def is_stale(self) -> bool:
        """
        Check whether the lock is held by a process that no longer exists.

        Only owners recorded on this host can be judged; a lock without a
        readable owner record is never considered stale.
        """
        pid = self.owner_pid()
        if pid is None or pid == os.getpid():
            return False
        return not psutil.pid_exists(pid)

    def reclaim(self) -> None:
        """Remove the lock file and owner record left behind by a dead owner."""
        for path in (self.lock_path, self.owner_path):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.debug(f"Could not remove {path}: {e}")

    def _write_owner(self) -> None:
        record = {
            "pid": os.getpid(),
            "host": socket.gethostname(),
            "acquired_at": time.time(),
        }
        atomic_write(self.owner_path, json.dumps(record))

    def _clear_owner(self) -> None:
        try:
            self.owner_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove lock owner record {self.owner_path}: {e}")


__all__ = ["OutputDirectoryLock", "LockTimeout", "LOCK_FILE_NAME"]
