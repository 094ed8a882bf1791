"""Bucket ranking of match records."""

from __future__ import annotations

from collections.abc import Generator, Iterable

from ..runtime.scheduler import YieldThrottle


def sort_match_records(
    records: Iterable[tuple[int, int, int, int]],
    throttle: YieldThrottle,
) -> Generator[None, None, list[int]]:
    """Rank ``(groups, width, start, index)`` records without a global comparator.

    Records are spread into nested groups/width/start buckets. Only the index
    lists inside each innermost bucket are sorted, which keeps the result
    stable across runs. The generator yields between buckets when the
    throttle says so and returns the ranked item indexes.
    """
    buckets: dict[int, dict[int, dict[int, list[int]]]] = {}
    for groups, width, start, index in records:
        by_width = buckets.setdefault(groups, {})
        by_start = by_width.setdefault(width, {})
        by_start.setdefault(start, []).append(index)

    for by_width in buckets.values():
        for by_start in by_width.values():
            for bucket in by_start.values():
                if throttle.due():
                    yield
                bucket.sort()

    ranked: list[int] = []
    for groups in sorted(buckets):
        by_width = buckets[groups]
        for width in sorted(by_width):
            by_start = by_width[width]
            for start in sorted(by_start):
                ranked.extend(by_start[start])
    return ranked
