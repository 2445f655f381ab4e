"""Rendering critcmp results as a markdown report or a plain table.

The markdown report is what gets posted on the pull request. The plain
table is printed to the job log when posting is not possible; it is
computed from critcmp's relative factors rather than the durations and has
no significance column.
"""

from __future__ import annotations

from dataclasses import dataclass

from critcompare.critcmp import ComparisonRow, ParsedTable, parse_table
from critcompare.errors import ParseError
from critcompare.formatting import (
    escape_markdown_cell,
    format_percentage,
    format_table,
    to_precision,
)

NOT_AVAILABLE = "N/A"
SHORT_SHA_LENGTH = 7

_MARKDOWN_TEMPLATE = """\
## Benchmark for {short_sha}
<details>
<summary>Click to view benchmark</summary>

| Test | Base         | PR               | % | significant % |
|------|--------------|------------------|---|---------------|
{rows}

</details>
"""


def _bold(text: str) -> str:
    return f"**{text}**"


# ---------------------------------------------------------------------------
# Markdown report
# ---------------------------------------------------------------------------


def format_markdown_row(row: ComparisonRow) -> str:
    """Format one comparison as a markdown table row.

    The faster side's duration is bolded when the difference is
    significant. Missing durations and differences show as ``N/A``.
    """
    base_duration = row.base_duration or NOT_AVAILABLE
    changes_duration = row.changes_duration or NOT_AVAILABLE
    difference = NOT_AVAILABLE
    significant_difference = NOT_AVAILABLE

    if row.base is not None and row.changes is not None:
        difference = format_percentage(row.diff_percent)
        significant_difference = format_percentage(row.significant_diff_percent)
        if row.significant:
            if row.changes.duration < row.base.duration:
                changes_duration = _bold(changes_duration)
            elif row.changes.duration > row.base.duration:
                base_duration = _bold(base_duration)

    name = escape_markdown_cell(row.name)
    return (
        f"| {name} | {base_duration} | {changes_duration} "
        f"| {difference} | {significant_difference} |"
    )


def format_error_row(error: ParseError) -> str:
    """Format an unparseable row so it stays visible in the report."""
    name = escape_markdown_cell(error.name or error.line.strip())
    cells = " | ".join([NOT_AVAILABLE] * 4)
    return f"| {name} | {cells} |"


def render_markdown(table: ParsedTable, sha: str) -> str:
    """Render a parsed table as the markdown comment body."""
    lines = [format_markdown_row(row) for row in table.rows]
    lines += [format_error_row(err) for err in table.errors]
    return _MARKDOWN_TEMPLATE.format(
        short_sha=sha[:SHORT_SHA_LENGTH],
        rows="\n".join(lines),
    )


def convert_to_markdown(output: str, sha: str) -> str:
    """Render raw critcmp output as the markdown comment body."""
    return render_markdown(parse_table(output), sha)


# ---------------------------------------------------------------------------
# Fallback table
# ---------------------------------------------------------------------------


@dataclass
class TableRow:
    """One row of the fallback table."""

    name: str
    base_duration: str
    changes_duration: str
    difference: str


def factor_difference(row: ComparisonRow) -> str:
    """Percent difference from the relative factors, two significant digits."""
    if row.base_factor is None or row.changes_factor is None or row.base_factor == 0:
        return NOT_AVAILABLE
    value = -(1 - row.changes_factor / row.base_factor) * 100
    sign = "+" if row.changes_factor > row.base_factor else ""
    return sign + to_precision(value, 2)


def to_table_row(row: ComparisonRow) -> TableRow:
    """Build a fallback row; the side with the lower factor is bolded."""
    base_duration = row.base_duration or NOT_AVAILABLE
    changes_duration = row.changes_duration or NOT_AVAILABLE
    if row.base_factor is not None and row.changes_factor is not None:
        if row.changes_factor < row.base_factor:
            changes_duration = _bold(changes_duration)
        elif row.changes_factor > row.base_factor:
            base_duration = _bold(base_duration)
    return TableRow(
        name=row.name,
        base_duration=base_duration,
        changes_duration=changes_duration,
        difference=factor_difference(row),
    )


def _error_table_row(error: ParseError) -> TableRow:
    if error.row is not None:
        return to_table_row(error.row)
    return TableRow(
        name=error.name or error.line.strip(),
        base_duration=NOT_AVAILABLE,
        changes_duration=NOT_AVAILABLE,
        difference=NOT_AVAILABLE,
    )


def table_rows(table: ParsedTable) -> list[TableRow]:
    """Fallback rows for a parsed table.

    Rows whose durations could not be parsed still get a difference from
    their factors; rows without usable factors show as ``N/A``.
    """
    rows = [to_table_row(row) for row in table.rows]
    rows += [_error_table_row(err) for err in table.errors]
    return rows


def convert_to_table_rows(output: str) -> list[TableRow]:
    """Parse raw critcmp output into fallback rows."""
    return table_rows(parse_table(output))


def format_fallback_table(rows: list[TableRow]) -> str:
    """Render fallback rows as an aligned plain-text table."""
    return format_table(
        ["name", "baseDuration", "changesDuration", "difference"],
        [[r.name, r.base_duration, r.changes_duration, r.difference] for r in rows],
        alignments=["l", "r", "r", "r"],
    )


def render_fallback(table: ParsedTable) -> str:
    """Render a parsed table as the plain-text fallback."""
    return format_fallback_table(table_rows(table))
