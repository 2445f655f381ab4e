"""Shared text formatting helpers for critcompare."""

from __future__ import annotations

import math


def format_percentage(value: float) -> str:
    """Format a percent difference for the report.

    ``""`` for exactly zero, ``"+1.23%"`` for positive values and
    ``"-1.23%"`` for negative ones. NaN formats as ``"N/A"``.
    """
    if math.isnan(value):
        return "N/A"
    if value == 0:
        return ""
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}%"


def to_precision(value: float, digits: int = 2) -> str:
    """Format *value* like JavaScript's ``value.toPrecision(digits)``.

    ``-7.17`` gives ``'-7.2'``, ``0`` gives ``'0.0'``, ``12.3`` gives ``'12'``
    and ``150`` gives ``'1.5e+2'``.
    """
    if math.isnan(value):
        return "N/A"
    if value == 0:
        return "0." + "0" * (digits - 1) if digits > 1 else "0"
    mantissa, _, exponent_text = f"{value:.{digits - 1}e}".partition("e")
    exponent = int(exponent_text)
    if exponent < -6 or exponent >= digits:
        sign = "+" if exponent >= 0 else "-"
        return f"{mantissa}e{sign}{abs(exponent)}"
    return f"{value:.{max(digits - 1 - exponent, 0)}f}"


def escape_markdown_cell(text: str) -> str:
    """Escape pipe characters so *text* stays inside one table cell."""
    return text.replace("|", "\\|")


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    indent: int = 2,
) -> str:
    """Format rows as an aligned plain-text table.

    Column widths come from the widest cell. Columns marked ``'r'`` in
    *alignments* are right-aligned, all others left-aligned. Short rows are
    padded with empty cells.
    """
    if not headers:
        return ""

    ncols = len(headers)
    aligns = list(alignments or []) + ["l"] * ncols
    table = [list(headers)] + [(list(row) + [""] * ncols)[:ncols] for row in rows]

    widths = [max(len(line[ci]) for line in table) for ci in range(ncols)]
    rule = ["-" * w for w in widths]
    table.insert(1, rule)

    prefix = " " * indent
    lines: list[str] = []
    for line in table:
        cells = [
            cell.rjust(widths[ci]) if aligns[ci] == "r" else cell.ljust(widths[ci])
            for ci, cell in enumerate(line)
        ]
        lines.append((prefix + "  ".join(cells)).rstrip())
    return "\n".join(lines)
