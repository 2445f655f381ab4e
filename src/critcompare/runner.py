"""Running benchmark cases on the branch that defines them.

Cases are visited in the order of the union of both catalogs. For each
case the changes executable runs first (on the changes branch), then the
base executable (on the base branch); checkouts only happen when the next
run needs the other branch, so consecutive cases on the same branch share
one checkout.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from critcompare.branches import BranchContext, BranchSwitcher
from critcompare.catalog import CaseCatalog
from critcompare.errors import RunError
from critcompare.logging import get_logger
from critcompare.process import ProcessRunner, log_output

log = get_logger("runner")

CHANGES_BASELINE = "changes"
BASE_BASELINE = "base"

_BASELINES = {
    BranchContext.ON_CHANGES: CHANGES_BASELINE,
    BranchContext.ON_BASE: BASE_BASELINE,
}


@dataclass(frozen=True)
class CaseRun:
    """One benchmark case executed on one branch."""

    case: str
    branch: BranchContext
    executable: Path
    baseline: str


def case_order(changes: CaseCatalog, base: CaseCatalog) -> list[str]:
    """Union of case names: changes cases first, then base-only cases."""
    names = dict.fromkeys(changes)
    names.update(dict.fromkeys(base))
    return list(names)


def run_case(
    runner: ProcessRunner,
    case: str,
    executable: Path,
    baseline: str,
    cwd: Path | None = None,
) -> None:
    """Run one case and save its measurements under *baseline*.

    Raises:
        RunError: If the executable exits with a non-zero status.
    """
    args = ["--bench", case, "--save-baseline", baseline]
    result = runner.run(executable, args, cwd=cwd)
    log_output(log, result)
    if not result.ok:
        raise RunError(
            f"{executable.name} {' '.join(args)} failed with exit code {result.returncode}",
            result=result,
        )


def run_benchmarks(
    runner: ProcessRunner,
    changes: CaseCatalog,
    base: CaseCatalog,
    switcher: BranchSwitcher,
    cwd: Path | None = None,
) -> list[CaseRun]:
    """Benchmark every case on each branch that defines it.

    Leaves the changes branch checked out when done. If a checkout or run
    fails, the error propagates immediately without restoring the branch.

    Returns:
        The runs performed, in order.
    """
    runs: list[CaseRun] = []
    for case in case_order(changes, base):
        for branch, catalog in (
            (BranchContext.ON_CHANGES, changes),
            (BranchContext.ON_BASE, base),
        ):
            executable = catalog.get(case)
            if executable is None:
                continue
            if switcher.ensure(branch):
                log.debug("%s: Checked out to %s branch", case, branch.value)
            baseline = _BASELINES[branch]
            run_case(runner, case, executable, baseline, cwd=cwd)
            log.info("%s: %s benchmarked", case, baseline.capitalize())
            runs.append(CaseRun(case=case, branch=branch, executable=executable, baseline=baseline))

    if switcher.restore():
        log.debug("Checked out to changes branch")
    return runs
