"""Significance of a difference between two benchmark measurements.

Each measurement is a duration with an error estimate. A difference is
significant when the intervals ``duration ± SIGNIFICANT_FACTOR * error``
of the two measurements do not overlap.
"""

from __future__ import annotations

import math

SIGNIFICANT_FACTOR = 2


def significance_band(duration: float, error: float) -> tuple[float, float]:
    """Return the uncertainty-expanded interval ``(low, high)``."""
    spread = SIGNIFICANT_FACTOR * error
    return (duration - spread, duration + spread)


def is_significant(
    changes_dur: float,
    changes_err: float,
    base_dur: float,
    base_err: float,
) -> bool:
    """True if the changes and base intervals do not overlap."""
    changes_low, changes_high = significance_band(changes_dur, changes_err)
    base_low, base_high = significance_band(base_dur, base_err)
    if changes_dur < base_dur:
        return changes_high < base_low
    return changes_low > base_high


def diff_percentage(changes: float, base: float) -> float:
    """Percent change from *base* to *changes*; positive means slower.

    Returns NaN when *base* is zero.
    """
    if base == 0:
        return math.nan
    return -(1 - changes / base) * 100


def significant_diff_percentage(
    changes_dur: float,
    changes_err: float,
    base_dur: float,
    base_err: float,
) -> float:
    """The smallest difference consistent with both error intervals.

    Evaluated between the nearest edges of the two intervals and clamped
    toward zero, so overlapping intervals give exactly ``0``.
    """
    changes_low, changes_high = significance_band(changes_dur, changes_err)
    base_low, base_high = significance_band(base_dur, base_err)
    if changes_dur < base_dur:
        return min(0.0, diff_percentage(changes_high, base_low))
    return max(0.0, diff_percentage(changes_low, base_high))
