"""Per-day token usage from cumulative token snapshots."""

from typing import Optional, Sequence

from devday.types.messages import TokenSnapshot, TokenUsage
from devday.utils.day_window import DayWindow


def last_at_or_before(snapshots: Sequence[TokenSnapshot], max_ts: int) -> Optional[TokenSnapshot]:
    for snap in reversed(snapshots):
        if snap.ts <= max_ts:
            return snap
    return None


def last_before(snapshots: Sequence[TokenSnapshot], min_ts: int) -> Optional[TokenSnapshot]:
    for snap in reversed(snapshots):
        if snap.ts < min_ts:
            return snap
    return None


def compute_day_token_usage(snapshots: Sequence[TokenSnapshot], window: DayWindow) -> TokenUsage:
    """Difference the cumulative totals bracketing the window.

    The end snapshot is the last one at or before the window end; the baseline
    is the last one strictly before the window start (all zero if none). Every
    field is clamped at zero. Cached input is reported as cache_read and removed
    from input, which assumes cached tokens are a subset of raw input; when that
    does not hold the clamp hides the discrepancy.
    """
    if not snapshots:
        return TokenUsage()

    ordered = sorted(snapshots, key=lambda s: s.ts)
    end = last_at_or_before(ordered, window.end_ms)
    if end is None:
        return TokenUsage()
    start = last_before(ordered, window.start_ms) or TokenSnapshot(ts=window.start_ms)

    input_delta = max(0, end.input - start.input)
    cached_delta = max(0, end.cached_input - start.cached_input)
    output = max(0, end.output - start.output)
    reasoning = max(0, end.reasoning - start.reasoning)

    return TokenUsage.of(
        input=max(0, input_delta - cached_delta),
        output=output,
        reasoning=reasoning,
        cache_read=cached_delta,
    )
