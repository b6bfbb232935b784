"""
Subprocess execution with checked exit status.

Commands inherit the invoking process's stdout/stderr unless output capture
is requested, so tar/configure/make output is forwarded live. Unlike a plain
``subprocess.run`` call, the wait is polled so that a CancellationToken and a
stage deadline are honoured while the child runs.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Type

from nexekit.core.cancellation import CancellationToken, Deadline
from nexekit.core.exceptions import NexeKitError, OperationCancelled

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.5


def run_command(
    cmd: List[str],
    cwd: Optional[Path] = None,
    error_cls: Type[NexeKitError] = NexeKitError,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
    capture_output: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a command to completion and validate its exit status.

    Args:
        cmd: Command and arguments
        cwd: Working directory for the child
        error_cls: Exception type raised on failure (e.g. BuildError)
        timeout: Seconds before the child is killed (None = no limit)
        cancel_token: Optional token; the child is killed when cancelled
        capture_output: Capture stdout/stderr as UTF-8 text instead of inheriting

    Returns:
        CompletedProcess with returncode 0 (and captured output if requested)

    Raises:
        error_cls: If the command is missing, exits non-zero or times out
        OperationCancelled: If cancel_token was cancelled while waiting
    """
    display = " ".join(str(part) for part in cmd)
    logger.info(display)

    pipe = subprocess.PIPE if capture_output else None
    try:
        proc = subprocess.Popen(
            [str(part) for part in cmd],
            cwd=str(cwd) if cwd else None,
            stdout=pipe,
            stderr=pipe,
            encoding="utf-8" if capture_output else None,
            errors="replace" if capture_output else None,
        )
    except FileNotFoundError as e:
        raise error_cls(f"Command not found: {cmd[0]}") from e
    except OSError as e:
        raise error_cls(f"Failed to start '{display}': {e}") from e

    deadline = Deadline(timeout)
    stdout, stderr = None, None

    while True:
        remaining = deadline.remaining()
        wait = POLL_INTERVAL if remaining is None else min(POLL_INTERVAL, remaining)
        try:
            stdout, stderr = proc.communicate(timeout=wait)
            break
        except subprocess.TimeoutExpired:
            pass

        if cancel_token is not None and cancel_token.cancelled:
            _kill(proc)
            raise OperationCancelled(
                f"Operation cancelled while running '{display}': {cancel_token.reason}"
            )
        if deadline.expired:
            _kill(proc)
            raise error_cls(f"'{display}' timed out after {timeout}s")

    if proc.returncode != 0:
        message = f"'{display}' failed with exit code {proc.returncode}"
        if capture_output and stderr:
            message += f": {stderr.strip()}"
        raise error_cls(message)

    logger.debug(f"Command succeeded: {display}")
    return subprocess.CompletedProcess(proc.args, proc.returncode, stdout, stderr)


def _kill(proc: subprocess.Popen) -> None:
    """Kill a child process and reap it."""
    proc.kill()
    try:
        proc.communicate(timeout=10)
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {proc.pid} did not exit after kill")


__all__ = ["run_command", "POLL_INTERVAL"]
