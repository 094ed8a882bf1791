"""Runtime pieces shared by picker sessions.

Cooperative scheduling for matching work and process ingest for items
produced by external commands.
"""

from __future__ import annotations

from .ingest import IngestHandle, IngestResult, ProcessIngest, cli_postprocess, require_executable
from .scheduler import DEFAULT_YIELD_INTERVAL, CooperativeScheduler, CooperativeTask, YieldThrottle

__all__ = [
    "DEFAULT_YIELD_INTERVAL",
    "CooperativeScheduler",
    "CooperativeTask",
    "IngestHandle",
    "IngestResult",
    "ProcessIngest",
    "YieldThrottle",
    "cli_postprocess",
    "require_executable",
]
