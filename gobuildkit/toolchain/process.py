"""
Child process execution for the Go toolchain.

stdout and stderr are drained by two reader threads so neither pipe can
fill up and deadlock the compiler. The child runs in its own session; on
timeout or interrupt its whole process tree is terminated before the
exception propagates, so no compiler processes are orphaned.
"""

import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from typing import IO, Callable, List, Mapping, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str, str], None]

# Seconds a terminated process gets before it is killed
TERMINATE_GRACE = 3.0


@dataclass
class ProcessResult:
    """Outcome of a finished child process."""

    returncode: int
    stdout: str
    stderr: str


def run_process(
    command: Sequence[str],
    env: Mapping[str, str],
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    on_output: Optional[OutputCallback] = None,
) -> ProcessResult:
    """
    Run a command to completion while streaming its output.

    Args:
        command: Program and arguments
        env: Complete environment for the child
        cwd: Working directory for the child
        timeout: Seconds before the process tree is terminated
        on_output: Called as on_output(stream_name, line) for every line,
            stream_name being 'stdout' or 'stderr'

    Returns:
        ProcessResult with the exit code and captured text

    Raises:
        FileNotFoundError: If the program does not exist
        subprocess.TimeoutExpired: If the timeout expired (tree terminated)
    """
    process = subprocess.Popen(
        list(command),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=dict(env),
        cwd=cwd,
        text=True,
        encoding="utf-8",
        errors="replace",
        start_new_session=os.name != "nt",
    )
    logger.debug(f"Started process {process.pid}: {' '.join(command)}")

    stdout_lines: List[str] = []
    stderr_lines: List[str] = []
    readers = [
        threading.Thread(
            target=_drain,
            args=(process.stdout, "stdout", stdout_lines, on_output),
            daemon=True,
        ),
        threading.Thread(
            target=_drain,
            args=(process.stderr, "stderr", stderr_lines, on_output),
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    try:
        returncode = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {process.pid} exceeded {timeout}s, terminating")
        _stop(process, readers)
        raise subprocess.TimeoutExpired(
            list(command), timeout, "".join(stdout_lines), "".join(stderr_lines)
        ) from None
    except BaseException:
        logger.warning(f"Interrupted, terminating process {process.pid}")
        _stop(process, readers)
        raise

    for reader in readers:
        reader.join()

    return ProcessResult(
        returncode=returncode,
        stdout="".join(stdout_lines),
        stderr="".join(stderr_lines),
    )


def _drain(
    stream: IO[str],
    name: str,
    sink: List[str],
    on_output: Optional[OutputCallback],
) -> None:
    with stream:
        for line in iter(stream.readline, ""):
            sink.append(line)
            if on_output is not None:
                on_output(name, line.rstrip("\r\n"))


def _stop(process: subprocess.Popen, readers: List[threading.Thread]) -> None:
    terminate_process_tree(process.pid)
    process.wait()
    for reader in readers:
        reader.join(timeout=TERMINATE_GRACE)


def terminate_process_tree(pid: int, grace: float = TERMINATE_GRACE) -> int:
    """
    Terminate a process and all of its descendants.

    Children are terminated before their parents; anything still alive
    after the grace period is killed.

    Returns:
        Number of processes signalled
    """
    try:
        root = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return 0

    try:
        children = root.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    processes = list(reversed(children)) + [root]
    signalled = []
    for proc in processes:
        try:
            proc.terminate()
            signalled.append(proc)
        except psutil.NoSuchProcess:
            pass
        except psutil.AccessDenied as e:
            logger.warning(f"Failed to terminate process {proc.pid}: {e}")

    _gone, alive = psutil.wait_procs(signalled, timeout=grace)
    for proc in alive:
        try:
            proc.kill()
            logger.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    return len(signalled)


__all__ = ["ProcessResult", "run_process", "terminate_process_tree"]
