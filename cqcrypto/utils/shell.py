from __future__ import annotations

import logging
import signal
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

from ..infra.contracts import BackgroundProcess, BackgroundSpawner
from ..infra.models import CommandResult

logger = logging.getLogger(__name__)

# Seconds a background process gets to exit after SIGINT before it is killed.
REAP_GRACE_S = 5.0


def run_command(argv: Sequence[str], *, cwd: Optional[Path] = None) -> CommandResult:
    """Run argv to completion and capture its output.

    Raises OSError when the executable cannot be started at all.
    """
    cp = subprocess.run(
        list(argv),
        cwd=str(cwd) if cwd is not None else None,
        check=False,
        text=True,
        errors="replace",
        capture_output=True,
    )
    return CommandResult(argv=tuple(argv), returncode=cp.returncode, stdout=cp.stdout or "", stderr=cp.stderr or "")


def spawn_background(argv: Sequence[str]) -> BackgroundProcess:
    return subprocess.Popen(
        list(argv),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )


def stop_background(proc: BackgroundProcess, grace_s: float = REAP_GRACE_S) -> None:
    """Interrupt proc and reap it, killing it if it ignores the interrupt."""
    if proc.poll() is not None:
        return
    try:
        proc.send_signal(signal.SIGINT)
    except ProcessLookupError:
        return
    try:
        proc.wait(timeout=grace_s)
    except subprocess.TimeoutExpired:
        logger.warning("Background process %s ignored SIGINT, killing it", proc.pid)
        proc.kill()
        proc.wait()


@contextmanager
def auxiliary_process(argv: Sequence[str], spawn: BackgroundSpawner = spawn_background) -> Iterator[BackgroundProcess]:
    """Keep a background process alive for the duration of the block.

    The process is stopped on every exit path out of the block.
    """
    proc = spawn(argv)
    logger.debug("Started background process %s: %s", proc.pid, " ".join(argv))
    try:
        yield proc
    finally:
        stop_background(proc)
        logger.debug("Stopped background process %s", proc.pid)
