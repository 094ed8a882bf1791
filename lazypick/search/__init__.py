"""Search package exports.

Combines query-mode matching, bucket ranking, and tool command builders in
one import surface.
"""

from __future__ import annotations

from .fuzzy import (
    MATCH_EXACT,
    MATCH_FUZZY,
    MATCH_NOSORT,
    QueryPlan,
    default_match,
    find_query,
    match_filter,
    match_fuzzy_single,
    match_offsets,
    parse_query,
)
from .sort import sort_match_records
from .tools import files_command, files_tool, grep_command, grep_tool, is_executable

__all__ = [
    "MATCH_EXACT",
    "MATCH_FUZZY",
    "MATCH_NOSORT",
    "QueryPlan",
    "default_match",
    "files_command",
    "files_tool",
    "find_query",
    "grep_command",
    "grep_tool",
    "is_executable",
    "match_filter",
    "match_fuzzy_single",
    "match_offsets",
    "parse_query",
    "sort_match_records",
]
