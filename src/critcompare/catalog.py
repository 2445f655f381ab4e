"""Enumerating benchmark cases.

A Criterion executable run with ``--bench --list`` prints one
``<case>: bench`` line per benchmark case it contains. The catalog maps each
case name to the executable that runs it.
"""

from __future__ import annotations

import re
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from critcompare.errors import RunError
from critcompare.logging import get_logger
from critcompare.process import ProcessRunner

log = get_logger("catalog")

_CASE_RE = re.compile(r"^(.+): bench$")

CaseCatalog = Mapping[str, Path]


def parse_case_list(output: str) -> list[str]:
    """Return case names from ``--list`` output, deduplicated in order."""
    cases: dict[str, None] = {}
    for line in output.splitlines():
        m = _CASE_RE.match(line)
        if m:
            cases.setdefault(m.group(1), None)
    return list(cases)


def list_cases(runner: ProcessRunner, executable: Path, cwd: Path | None = None) -> list[str]:
    """List the benchmark cases exposed by one executable.

    Raises:
        RunError: If the executable exits with a non-zero status.
    """
    result = runner.run(executable, ["--bench", "--list"], cwd=cwd)
    if not result.ok:
        raise RunError(
            f"{executable.name} --bench --list failed with exit code {result.returncode}",
            result=result,
        )
    return parse_case_list(result.stdout)


def build_catalog(
    runner: ProcessRunner,
    executables: Iterable[Path],
    cwd: Path | None = None,
) -> CaseCatalog:
    """Map every case name to the executable that defines it.

    When two executables expose the same case name, the later one wins.

    Returns:
        A read-only mapping of case name to executable path.
    """
    catalog: dict[str, Path] = {}
    for exe in executables:
        cases = list_cases(runner, exe, cwd=cwd)
        log.debug("%s: %d case(s)", exe.name, len(cases))
        for case in cases:
            if case in catalog and catalog[case] != exe:
                log.debug("Case %r in %s shadows %s", case, exe.name, catalog[case].name)
            catalog[case] = exe
    return MappingProxyType(catalog)
