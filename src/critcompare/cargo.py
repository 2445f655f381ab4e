"""Compiling benchmark executables with cargo.

``cargo bench --no-run`` builds every benchmark target without running it
and reports each produced binary on stderr, e.g.::

    Executable benches/parse.rs (target/release/deps/parse-1f2e3d4c5b6a7980)

The paths are scraped from those lines.
"""

from __future__ import annotations

import re
from pathlib import Path

from critcompare.config import CompareConfig
from critcompare.errors import BuildError
from critcompare.logging import get_logger
from critcompare.process import ProcessRunner, log_output

log = get_logger("cargo")

_EXECUTABLE_RE = re.compile(r"Executable.+(target[\\/]release[\\/][^)]+)")


def bench_command(config: CompareConfig) -> list[str]:
    """Build the ``cargo`` arguments for the configured benchmark selection."""
    cmd = ["bench"]
    if config.bench_name:
        cmd += ["--bench", config.bench_name]
    if not config.default_features:
        cmd.append("--no-default-features")
    if config.features:
        cmd += ["--features", config.features]
    return cmd


def extract_executables(output: str) -> list[str]:
    """Return the executable paths reported in cargo's diagnostic output.

    Duplicates are discarded; the first-seen order is kept.
    """
    found: dict[str, None] = {}
    for line in output.splitlines():
        m = _EXECUTABLE_RE.search(line)
        if m:
            found.setdefault(m.group(1).strip(), None)
    return list(found)


def compile_benchmarks(runner: ProcessRunner, config: CompareConfig) -> list[Path]:
    """Compile the benchmarks for the checked-out branch.

    Returns:
        Paths of the benchmark executables, resolved against ``config.cwd``.

    Raises:
        BuildError: If cargo exits with a non-zero status.
    """
    args = bench_command(config) + ["--no-run"]
    result = runner.run("cargo", args, cwd=config.cwd)
    log_output(log, result)
    if not result.ok:
        raise BuildError(
            f"cargo {' '.join(args)} failed with exit code {result.returncode}",
            result=result,
        )

    base = config.cwd or Path.cwd()
    executables = [base / rel for rel in extract_executables(result.stderr)]
    log.debug("Found %d benchmark executable(s)", len(executables))
    for exe in executables:
        log.debug("  %s", exe)
    if not executables:
        log.warning("cargo reported no benchmark executables")
    return executables


def install_critcmp(runner: ProcessRunner) -> None:
    """Install the ``critcmp`` comparison tool.

    Raises:
        BuildError: If ``cargo install`` fails.
    """
    result = runner.run("cargo", ["install", "critcmp"])
    log_output(log, result)
    if not result.ok:
        raise BuildError(
            f"cargo install critcmp failed with exit code {result.returncode}",
            result=result,
        )
