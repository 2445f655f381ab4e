"""End-to-end comparison of the changes branch against the base branch.

Steps, all strictly sequential:

1. Optionally install critcmp.
2. Compile the changes branch, copy its executables out, list its cases.
3. Check out the base branch and do the same, then switch back.
4. Run every case on each branch that defines it.
5. Compare the two baselines with critcmp.
6. Render the report and post it, falling back to a local table if
   posting fails.

Any failure before step 6 aborts the whole comparison.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from critcompare.actions import set_output
from critcompare.branches import BranchContext, BranchSwitcher
from critcompare.cargo import compile_benchmarks, install_critcmp
from critcompare.catalog import CaseCatalog, build_catalog
from critcompare.config import CompareConfig, check_config
from critcompare.critcmp import ParsedTable, parse_table, run_critcmp
from critcompare.errors import PostError
from critcompare.github import post_comment
from critcompare.logging import get_logger
from critcompare.process import ProcessRunner
from critcompare.relocate import relocate_executables
from critcompare.report import render_fallback, render_markdown
from critcompare.runner import CaseRun, run_benchmarks

log = get_logger("pipeline")

Poster = Callable[[CompareConfig, str], int]


@dataclass
class CompareOutcome:
    """Everything a comparison produced."""

    stdout: str
    stderr: str
    markdown: str
    comment_id: int | None = None
    fallback_table: str | None = None
    case_runs: list[CaseRun] = field(default_factory=list)
    checkouts: int = 0

    @property
    def posted(self) -> bool:
        return self.comment_id is not None


def prepare_branch(
    runner: ProcessRunner,
    config: CompareConfig,
    label: str,
    scratch_root: Path | None = None,
) -> CaseCatalog:
    """Compile the checked-out branch and catalog its relocated executables."""
    executables = compile_benchmarks(runner, config)
    log.info("%s compiled", label)
    moved = relocate_executables(executables, scratch_root=scratch_root)
    catalog = build_catalog(runner, moved, cwd=config.cwd)
    log.info("%s listed (%d case(s))", label, len(catalog))
    return catalog


def deliver_report(
    config: CompareConfig,
    outcome: CompareOutcome,
    table: ParsedTable,
    poster: Poster,
) -> None:
    """Post the markdown report, or fill in the fallback table."""
    try:
        outcome.comment_id = poster(config, outcome.markdown)
    except PostError as exc:
        log.warning("Failed to comment: %s", exc)
        log.info("Commenting is not possible from forks.")
        outcome.fallback_table = render_fallback(table)


def run_comparison(
    config: CompareConfig,
    runner: ProcessRunner,
    *,
    poster: Poster = post_comment,
    environ: Mapping[str, str] | None = None,
    scratch_root: Path | None = None,
) -> CompareOutcome:
    """Compare benchmarks between the changes branch and the base branch.

    Must start with the changes branch checked out.

    Args:
        config: Resolved configuration.
        runner: Runs cargo, git, the benchmark executables and critcmp.
        poster: Posts the report and returns the comment id.
        environ: Environment holding ``GITHUB_OUTPUT`` (default: os.environ).
        scratch_root: Parent directory for relocated executables.

    Raises:
        CompareError: For any failure other than posting the report.
    """
    check_config(config)
    log.debug("Config: %s", config.redacted())

    if config.install_critcmp:
        log.info("Installing critcmp")
        install_critcmp(runner)

    switcher = BranchSwitcher(runner, config.base_branch, cwd=config.cwd)

    changes_catalog = prepare_branch(runner, config, "Changes", scratch_root)

    switcher.ensure(BranchContext.ON_BASE)
    log.info("Checked out to base branch %s", config.base_branch)
    base_catalog = prepare_branch(runner, config, "Base", scratch_root)
    switcher.restore()
    log.info("Checked out to changes branch")

    log.info("Benchmark starting")
    case_runs = run_benchmarks(runner, changes_catalog, base_catalog, switcher, cwd=config.cwd)

    result = run_critcmp(runner, cwd=config.cwd)
    set_output("stdout", result.stdout, environ)
    set_output("stderr", result.stderr, environ)

    table = parse_table(result.stdout)
    outcome = CompareOutcome(
        stdout=result.stdout,
        stderr=result.stderr,
        markdown=render_markdown(table, config.sha),
        case_runs=case_runs,
        checkouts=switcher.checkouts,
    )

    if config.post_comment:
        deliver_report(config, outcome, table, poster)
    else:
        outcome.fallback_table = render_fallback(table)

    if outcome.comment_id is not None:
        set_output("comment-id", str(outcome.comment_id), environ)

    log.debug("Successfully run!")
    return outcome
