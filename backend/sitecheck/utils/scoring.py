# File: sitecheck/utils/scoring.py
# =============================================================================
# Rounding helpers shared by the aggregator, the display summaries and the
# progress stream.
# =============================================================================
# Scores round half up (2.5 -> 3). Python's round() rounds half to even
# (2.5 -> 2), so every rounding in the scoring path goes through here.
# =============================================================================

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from negative infinity."""
    return int(math.floor(value + 0.5))


def percent_of(part: float, whole: float) -> int:
    """Integer percentage of part/whole; 0 when whole is not positive."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)
