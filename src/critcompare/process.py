"""External process invocation.

Every collaborator critcompare drives (``cargo``, ``git``, benchmark
executables, ``critcmp``) is run through a :class:`ProcessRunner`, a single
``run(command, args, cwd=...)`` capability that returns the captured output
as a value. The pipeline can then be exercised against a fake runner
without spawning real processes.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from critcompare.logging import get_logger

log = get_logger("process")

# Shell convention for "command not found".
_NOT_FOUND_EXIT = 127


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of one external process."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True if the process exited with status 0."""
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)


class ProcessRunner(Protocol):
    """Anything that can run an external command and capture its output."""

    def run(
        self,
        command: str | Path,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
    ) -> ProcessResult: ...


class SubprocessRunner:
    """Run commands with :mod:`subprocess`, waiting for each to finish.

    No timeout is applied.
    """

    def run(
        self,
        command: str | Path,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
    ) -> ProcessResult:
        argv = (str(command), *args)
        log.debug("Running: %s%s", shlex.join(argv), f" (in {cwd})" if cwd else "")
        try:
            proc = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                cwd=str(cwd) if cwd is not None else None,
                check=False,
            )
        except OSError as exc:
            log.debug("Could not start %s: %s", argv[0], exc)
            return ProcessResult(args=argv, returncode=_NOT_FOUND_EXIT, stderr=str(exc))

        if proc.stderr:
            log.debug("%s stderr: %s", argv[0], proc.stderr.strip()[-2000:])
        return ProcessResult(
            args=argv,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )


def log_output(logger: logging.Logger, result: ProcessResult) -> None:
    """Echo a finished command's stdout, then stderr, at INFO."""
    for text in (result.stdout, result.stderr):
        if text.strip():
            logger.info("%s", text.rstrip())
