"""Query-mode detection and candidate filtering.

Queries are token lists. The first and last tokens select the mode:

- ``abc`` and ``*abc``: fuzzy, characters in order with gaps allowed.
- ``'abc``: exact substring.
- ``^abc`` / ``abc$``: exact substring anchored at start / end.
- ``ab cd``: grouped fuzzy, groups matched in order as one chain.
- a single plain character: exact substring, which ranks like fuzzy.

Each matching candidate produces one record ``(groups, width, start, index)``.
Records are plain tuples because they are built for every candidate on every
keystroke.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass

from ..runtime.scheduler import DEFAULT_YIELD_INTERVAL, YieldThrottle
from .sort import sort_match_records

log = logging.getLogger(__name__)

MatchRecord = tuple[int, int, int, int]

MATCH_EXACT = "exact"
MATCH_FUZZY = "fuzzy"
MATCH_NOSORT = "nosort"

GROUP_SEPARATOR = " "


@dataclass(frozen=True)
class QueryPlan:
    """Mode and stripped tokens for one query."""

    match_type: str
    tokens: tuple[str, ...]
    anchor_start: bool = False
    anchor_end: bool = False
    groups: tuple[tuple[str, ...], ...] = ()

    @property
    def is_grouped(self) -> bool:
        return len(self.groups) > 1

    @property
    def rescans_all(self) -> bool:
        # End-anchored results do not nest: "m$" matches are no superset of "md$".
        return self.match_type == MATCH_EXACT and self.anchor_end


def _split_groups(tokens: Sequence[str], separator: str) -> tuple[tuple[str, ...], ...]:
    groups: list[tuple[str, ...]] = []
    current: list[str] = []
    for token in tokens:
        if token == separator:
            if current:
                groups.append(tuple(current))
                current = []
            continue
        current.append(token)
    if current:
        groups.append(tuple(current))
    return tuple(groups)


def parse_query(query: Sequence[str], separator: str = GROUP_SEPARATOR) -> QueryPlan:
    """Detect the match mode from the first and last tokens and strip markers."""
    n_query = len(query)
    if n_query == 0:
        return QueryPlan(MATCH_NOSORT, ())

    is_fuzzy_forced = query[0] == "*"
    is_exact_plain = query[0] == "'"
    is_exact_start = query[0] == "^"
    is_exact_end = query[-1] == "$" and not (is_fuzzy_forced or is_exact_plain)

    start = 1 if (is_fuzzy_forced or is_exact_plain or is_exact_start) else 0
    end = n_query - 1 if is_exact_end else n_query
    tokens = tuple(query[start:end])
    if not tokens:
        return QueryPlan(MATCH_NOSORT, ())

    if is_fuzzy_forced:
        return QueryPlan(MATCH_FUZZY, tokens)
    if is_exact_plain or is_exact_start or is_exact_end:
        return QueryPlan(MATCH_EXACT, tokens, anchor_start=is_exact_start, anchor_end=is_exact_end)

    groups = _split_groups(tokens, separator) if separator in tokens else (tokens,)
    if not groups:
        return QueryPlan(MATCH_NOSORT, ())
    if len(groups) > 1:
        flat = tuple(token for group in groups for token in group)
        return QueryPlan(MATCH_FUZZY, flat, groups=groups)

    tokens = groups[0]
    if len(tokens) == 1:
        return QueryPlan(MATCH_EXACT, tokens)
    return QueryPlan(MATCH_FUZZY, tokens)


def exact_pattern(plan: QueryPlan) -> re.Pattern[str]:
    prefix = "^" if plan.anchor_start else ""
    suffix = r"\Z" if plan.anchor_end else ""
    return re.compile(prefix + re.escape("".join(plan.tokens)) + suffix)


def find_query(s: str, query: Sequence[str], init: int) -> tuple[int, int, int] | None:
    """Find ``query`` tokens in order starting at ``init``.

    Each token is searched left-most after the previous one. Returns the
    number of contiguous groups plus the start offsets of the first and last
    token, or ``None`` when the tokens do not all occur.
    """
    first = s.find(query[0], init)
    if first < 0:
        return None
    to = first + len(query[0]) - 1
    last, groups = first, 1
    for token in query[1:]:
        prev_to = to
        last = s.find(token, to + 1)
        if last < 0:
            return None
        to = last + len(token) - 1
        if last > prev_to + 1:
            groups += 1
    return groups, first, last


def match_fuzzy_single(candidate: str, index: int, query: Sequence[str]) -> MatchRecord | None:
    """Compute the best record for one candidate.

    Only the left-most chain for every possible first-token position is
    considered: fewer groups win, then smaller width, then earlier start. This
    keeps width optimal but may miss an alignment with fewer groups, e.g.
    ``{'a', 'b', 'c'}`` in ``"aaxbbbc"`` counts 3 groups where 2 exist.
    """
    found = find_query(candidate, query, 0)
    if found is None:
        return None
    groups, first, last = found
    if groups == 1:
        return (1, last - first, first, index)

    best_groups, best_first, best_width = groups, first, last - first
    while found is not None:
        groups, first, last = found
        width = last - first
        if groups < best_groups or (groups == best_groups and width < best_width):
            best_groups, best_first, best_width = groups, first, width
        found = find_query(candidate, query, first + 1)
    return (best_groups, best_width, best_first, index)


def match_filter_fuzzy(
    inds: Sequence[int],
    stritems: Sequence[str],
    query: Sequence[str],
    throttle: YieldThrottle,
) -> Generator[None, None, list[MatchRecord]]:
    records: list[MatchRecord] = []
    for ind in inds:
        if throttle.due():
            yield
        record = match_fuzzy_single(stritems[ind], ind, query)
        if record is not None:
            records.append(record)
    return records


def match_filter_exact(
    inds: Sequence[int],
    stritems: Sequence[str],
    pattern: re.Pattern[str],
    throttle: YieldThrottle,
) -> Generator[None, None, list[MatchRecord]]:
    records: list[MatchRecord] = []
    search = pattern.search
    for ind in inds:
        if throttle.due():
            yield
        found = search(stritems[ind])
        if found is not None:
            records.append((1, 0, found.start(), ind))
    return records


def match_filter(
    inds: Sequence[int],
    stritems: Sequence[str],
    plan: QueryPlan,
    throttle: YieldThrottle,
) -> Generator[None, None, list[MatchRecord]]:
    if plan.rescans_all:
        inds = range(len(stritems))
    if plan.match_type == MATCH_FUZZY:
        return (yield from match_filter_fuzzy(inds, stritems, plan.tokens, throttle))
    try:
        pattern = exact_pattern(plan)
    except re.error as exc:
        log.warning("invalid exact pattern for %r: %s", "".join(plan.tokens), exc)
        return []
    return (yield from match_filter_exact(inds, stritems, pattern, throttle))


def default_match(
    inds: Sequence[int] | None,
    stritems: Sequence[str],
    query: Sequence[str],
    *,
    yield_interval: float = DEFAULT_YIELD_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
) -> Generator[None, None, list[int]]:
    """Filter and rank ``inds`` against ``query`` as a cooperative task.

    The generator returns the ranked item indexes. An empty query, or one that
    is empty after stripping mode markers, keeps candidates in index order
    without sorting.
    """
    candidates = list(range(len(stritems)) if inds is None else inds)
    if not query:
        return list(range(len(stritems)))
    plan = parse_query(query)
    if plan.match_type == MATCH_NOSORT:
        return sorted(candidates)

    throttle = YieldThrottle(yield_interval, clock)
    records = yield from match_filter(candidates, stritems, plan, throttle)
    return (yield from sort_match_records(records, throttle))


def match_offsets(candidate: str, query: Sequence[str]) -> list[int] | None:
    """Return start offsets of every matched query token inside ``candidate``.

    Used for highlighting. Returns ``None`` if ``candidate`` does not match and
    an empty list for queries that match everything.
    """
    plan = parse_query(query)
    if plan.match_type == MATCH_NOSORT:
        return []
    if plan.match_type == MATCH_EXACT:
        found = exact_pattern(plan).search(candidate)
        if found is None:
            return None
        offsets = [found.start()]
        for token in plan.tokens[:-1]:
            offsets.append(offsets[-1] + len(token))
        return offsets

    record = match_fuzzy_single(candidate, 0, plan.tokens)
    if record is None:
        return None
    offsets = [record[2]]
    to = record[2] + len(plan.tokens[0]) - 1
    for token in plan.tokens[1:]:
        position = candidate.find(token, to + 1)
        offsets.append(position)
        to = position + len(token) - 1
    return offsets
