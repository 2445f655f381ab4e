"""Exception types raised while comparing benchmarks.

Every failure that aborts a comparison derives from :class:`CompareError`
so the CLI can report it in one place. :class:`PostError` is the only one
the pipeline recovers from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from critcompare.critcmp import ComparisonRow
    from critcompare.process import ProcessResult


class CompareError(Exception):
    """Base class for all critcompare failures."""

    def __init__(self, message: str, *, result: ProcessResult | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.result = result

    def __str__(self) -> str:
        if self.result is not None and self.result.stderr.strip():
            tail = self.result.stderr.strip()[-500:]
            return f"{self.message}\n{tail}"
        return self.message


class ConfigError(CompareError):
    """The configuration is missing required values or is invalid."""


class BuildError(CompareError):
    """``cargo`` failed to compile the benchmarks or install a tool."""


class CheckoutError(CompareError):
    """``git checkout`` failed while switching branches."""


class RunError(CompareError):
    """A benchmark executable or ``critcmp`` exited with an error."""


class CopyError(CompareError):
    """An executable could not be copied out of the build directory."""


class PostError(CompareError):
    """The report could not be posted as a comment."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(CompareError):
    """A row of ``critcmp`` output could not be parsed.

    Returned by the table parser rather than raised, so one malformed row
    does not abort a report. When only a duration is malformed, *row*
    keeps the name, factors and printed durations.
    """

    def __init__(
        self,
        message: str,
        *,
        line: str = "",
        name: str = "",
        row: ComparisonRow | None = None,
    ) -> None:
        super().__init__(message)
        self.line = line
        self.name = name
        self.row = row
