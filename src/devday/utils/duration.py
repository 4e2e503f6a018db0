"""Gap-capped active-duration estimation."""

from typing import Iterable

# No single gap between events counts for more than this
MAX_GAP_MS = 5 * 60 * 1000


def estimate_duration_ms(timestamps: Iterable[int], max_gap_ms: int = MAX_GAP_MS) -> int:
    """Sum consecutive gaps between sorted timestamps, each capped at max_gap_ms.

    Zero or negative gaps contribute nothing.
    """
    ordered = sorted(timestamps)
    total = 0
    for prev, cur in zip(ordered, ordered[1:]):
        gap = cur - prev
        if gap > 0:
            total += min(gap, max_gap_ms)
    return total


def capped_span_ms(start_ms: int | None, end_ms: int | None, max_ms: int = MAX_GAP_MS) -> int:
    """Length of one [start, end] span, capped; 0 when either end is missing."""
    if start_ms is None or end_ms is None or end_ms <= start_ms:
        return 0
    return min(end_ms - start_ms, max_ms)
