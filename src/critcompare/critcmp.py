"""Running critcmp and parsing its comparison table.

critcmp prints a two-line header followed by one row per benchmark group,
with columns separated by runs of two or more spaces::

    group          base                                   changes
    -----          ----                                   -------
    full prompt    1.08     46.0±0.90ms        ? B/sec    1.00     42.7±0.79ms        ? B/sec

The columns are: name, base factor, base duration±error, base throughput,
changes factor, changes duration±error, changes throughput. Throughput is
ignored.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from pathlib import Path

from critcompare.errors import ParseError, RunError
from critcompare.logging import get_logger
from critcompare.process import ProcessResult, ProcessRunner, log_output
from critcompare.runner import BASE_BASELINE, CHANGES_BASELINE
from critcompare.stats import (
    diff_percentage,
    is_significant,
    significant_diff_percentage,
)

log = get_logger("critcmp")

_HEADER_LINES = 2
_COLUMN_SEP_RE = re.compile(r"\s{2,}")
_ERROR_RE = re.compile(r"^(?P<value>[0-9.eE+-]+)\s*(?P<units>[^0-9.\s]+)$")

# Divisors converting each unit to seconds.
UNIT_DIVISORS: dict[str, float] = {
    "s": 1.0,
    "ms": 1e3,
    "µs": 1e6,  # micro sign, as printed by critcmp
    "μs": 1e6,  # greek mu
    "us": 1e6,
    "ns": 1e9,
}


def to_seconds(value: float, units: str) -> float:
    """Convert *value* in *units* to seconds. Unknown units pass through."""
    return value / UNIT_DIVISORS.get(units, 1.0)


def from_seconds(value: float, units: str) -> float:
    """Convert seconds back to *units*. Unknown units pass through."""
    return value * UNIT_DIVISORS.get(units, 1.0)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Measurement:
    """A duration and its error, both in seconds."""

    duration: float
    error: float
    units: str


@dataclass
class ComparisonRow:
    """One benchmark group from critcmp's table."""

    name: str
    base_factor: float | None = None
    base_duration: str | None = None  # As printed, e.g. "46.0±0.90ms"
    changes_factor: float | None = None
    changes_duration: str | None = None
    base: Measurement | None = None
    changes: Measurement | None = None

    @property
    def comparable(self) -> bool:
        """True if both sides have a measurement."""
        return self.base is not None and self.changes is not None

    @property
    def diff_percent(self) -> float | None:
        if self.base is None or self.changes is None:
            return None
        return diff_percentage(self.changes.duration, self.base.duration)

    @property
    def significant_diff_percent(self) -> float | None:
        if self.base is None or self.changes is None:
            return None
        return significant_diff_percentage(
            self.changes.duration,
            self.changes.error,
            self.base.duration,
            self.base.error,
        )

    @property
    def significant(self) -> bool:
        if self.base is None or self.changes is None:
            return False
        return is_significant(
            self.changes.duration,
            self.changes.error,
            self.base.duration,
            self.base.error,
        )


@dataclass
class ParsedTable:
    """Rows parsed from critcmp output, plus the lines that failed."""

    rows: list[ComparisonRow] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_measurement(text: str) -> Measurement:
    """Parse ``"46.0±0.90ms"`` into seconds.

    The units are read from the end of the error part and apply to both
    the duration and the error.

    Raises:
        ParseError: If the text is not ``<number>±<number><units>``.
    """
    value_text, sep, error_text = text.strip().partition("±")
    if not sep:
        raise ParseError(f"Missing '±' in duration {text!r}", line=text)
    m = _ERROR_RE.match(error_text.strip())
    if not m:
        raise ParseError(f"Cannot read error and units from {text!r}", line=text)
    units = m.group("units")
    try:
        duration = float(value_text)
        error = float(m.group("value"))
    except ValueError as exc:
        raise ParseError(f"Invalid number in duration {text!r}", line=text) from exc
    if units not in UNIT_DIVISORS:
        log.debug("Unknown duration units %r in %r; using raw value", units, text)
    return Measurement(
        duration=to_seconds(duration, units),
        error=to_seconds(error, units),
        units=units,
    )


def _parse_factor(text: str | None, line: str) -> float | None:
    if text is None:
        return None
    try:
        value = float(text)
    except ValueError as exc:
        raise ParseError(f"Invalid factor {text!r}", line=line) from exc
    if math.isnan(value):
        raise ParseError(f"Invalid factor {text!r}", line=line)
    return value


def parse_row(line: str) -> ComparisonRow | ParseError | None:
    """Parse one data row of critcmp's table.

    Returns:
        A ComparisonRow; a ParseError if a field is malformed; or None for
        rows with nothing to report (blank, unnamed, or without any
        duration).
    """
    cells = _COLUMN_SEP_RE.split(line.rstrip())
    cells += [""] * (7 - len(cells))
    name, base_factor, base_duration, _, changes_factor, changes_duration, _ = cells[:7]
    if not name.strip():
        return None
    if not base_duration and not changes_duration:
        return None

    try:
        row = ComparisonRow(
            name=name,
            base_factor=_parse_factor(base_factor or None, line),
            base_duration=base_duration or None,
            changes_factor=_parse_factor(changes_factor or None, line),
            changes_duration=changes_duration or None,
        )
    except ParseError as exc:
        exc.line = line
        exc.name = name
        return exc

    if row.base_duration is not None and row.changes_duration is not None:
        try:
            base = parse_measurement(row.base_duration)
            changes = parse_measurement(row.changes_duration)
        except ParseError as exc:
            exc.line = line
            exc.name = name
            exc.row = row
            return exc
        row.base = base
        row.changes = changes
    return row


def parse_table(output: str) -> ParsedTable:
    """Parse critcmp's full text output, skipping the header."""
    table = ParsedTable()
    for line in output.rstrip().splitlines()[_HEADER_LINES:]:
        parsed = parse_row(line)
        if parsed is None:
            continue
        if isinstance(parsed, ParseError):
            log.warning("Could not parse critcmp row %r: %s", line.strip(), parsed.message)
            table.errors.append(parsed)
        else:
            table.rows.append(parsed)
    return table


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


def run_critcmp(runner: ProcessRunner, cwd: Path | None = None) -> ProcessResult:
    """Compare the saved ``base`` and ``changes`` baselines.

    Raises:
        RunError: If critcmp exits with a non-zero status.
    """
    result = runner.run("critcmp", [BASE_BASELINE, CHANGES_BASELINE], cwd=cwd)
    log_output(log, result)
    if not result.ok:
        raise RunError(f"critcmp failed with exit code {result.returncode}", result=result)
    return result
