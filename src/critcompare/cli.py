"""Command-line interface for critcompare.

Subcommands:
    critcompare run      Benchmark the changes branch against a base branch
    critcompare render   Render saved critcmp output as a report or table
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import click

from critcompare import __version__
from critcompare.logging import get_logger, setup_logging

log = get_logger("cli")


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """critcompare: compare Criterion benchmarks between two git branches."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with configuration values.",
)
@click.option("--token", type=str, default=None, help="API token used to post the comment.")
@click.option(
    "--branch-name",
    type=str,
    default=None,
    help="Base branch to compare against (default: the pull request base).",
)
@click.option(
    "--cwd",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of the cargo project.",
)
@click.option("--bench-name", type=str, default=None, help="Only build this bench target.")
@click.option("--features", type=str, default=None, help="Cargo features to enable.")
@click.option(
    "--default-features/--no-default-features",
    default=None,
    help="Build with the crate's default features.",
)
@click.option("--sha", type=str, default=None, help="Commit shown in the report header.")
@click.option("--repository", type=str, default=None, help="owner/repo to comment on.")
@click.option("--issue-number", type=int, default=None, help="Issue or pull request number.")
@click.option(
    "--install-critcmp/--no-install-critcmp",
    default=None,
    help="Run 'cargo install critcmp' first.",
)
@click.option("--no-post", is_flag=True, help="Print the results table instead of commenting.")
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
def run(  # noqa: PLR0913
    config_path: Path | None,
    token: str | None,
    branch_name: str | None,
    cwd: Path | None,
    bench_name: str | None,
    features: str | None,
    default_features: bool | None,
    sha: str | None,
    repository: str | None,
    issue_number: int | None,
    install_critcmp: bool | None,
    no_post: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Benchmark the checked-out branch against a base branch.

    Values are taken from action inputs (INPUT_*) and CI variables
    (GITHUB_*), then from --config, then from these options.

    \b
    Examples:
        # Inside a pull_request workflow
        critcompare run

        # Locally, against main, without posting
        critcompare run --branch-name main --no-post
    """
    from critcompare.actions import set_failed
    from critcompare.config import build_config, load_config_file, values_from_env
    from critcompare.errors import CompareError
    from critcompare.pipeline import run_comparison
    from critcompare.process import SubprocessRunner

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    cli_values: dict[str, Any] = {
        "token": token,
        "branch_name": branch_name,
        "cwd": cwd,
        "bench_name": bench_name,
        "features": features,
        "default_features": default_features,
        "sha": sha,
        "repository": repository,
        "issue_number": issue_number,
        "install_critcmp": install_critcmp,
        "post_comment": False if no_post else None,
    }

    try:
        file_values = load_config_file(config_path) if config_path else {}
        config = build_config(values_from_env(os.environ), file_values, cli_values)
        outcome = run_comparison(config, SubprocessRunner())
    except CompareError as exc:
        log.error("%s", exc)
        set_failed(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nComparison interrupted.", err=True)
        sys.exit(130)
    except Exception as exc:  # noqa: BLE001
        log.exception("Unhandled error")
        set_failed(f"Unhandled error:\n{exc}")
        sys.exit(1)

    if outcome.fallback_table is not None:
        click.echo(outcome.fallback_table)


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------


@main.command()
@click.argument(
    "output_file",
    type=click.Path(exists=True, dir_okay=False, allow_dash=True),
)
@click.option("--sha", type=str, default="", help="Commit shown in the report header.")
@click.option(
    "--table",
    "as_table",
    is_flag=True,
    help="Render the plain-text fallback table instead of markdown.",
)
def render(output_file: str, sha: str, as_table: bool) -> None:
    """Render saved critcmp output (OUTPUT_FILE, or - for stdin).

    \b
    Example:
        critcmp base changes > cmp.txt
        critcompare render cmp.txt --sha "$(git rev-parse HEAD)"
    """
    from critcompare.report import (
        convert_to_markdown,
        convert_to_table_rows,
        format_fallback_table,
    )

    # Rows that fail to parse are reported as warnings on stderr.
    setup_logging(quiet=True)

    with click.open_file(output_file, encoding="utf-8") as f:
        text = f.read()

    if as_table:
        click.echo(format_fallback_table(convert_to_table_rows(text)))
    else:
        click.echo(convert_to_markdown(text, sha), nl=False)
