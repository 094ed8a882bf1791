"""Ready-made pickers over command output, project files, and text search."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from ..config import PickerConfigError
from ..runtime.ingest import IngestHandle
from ..search.tools import (
    FALLBACK_TOOL,
    GREP_OK_RETURNCODES,
    files_command,
    files_fallback_items,
    files_tool,
    grep_command,
    grep_fallback_items,
    grep_tool,
    is_executable,
)
from .registry import PickerRegistry
from .session import PickerSession


def cli(
    registry: PickerRegistry,
    command: Sequence[str],
    *,
    postprocess: Callable[[list[str]], list[str]] | None = None,
    ok_returncodes: tuple[int, ...] = (0,),
    **options,
) -> PickerSession:
    """Pick from the stdout lines of ``command``."""
    command = list(command)

    def load(session: PickerSession) -> None:
        session.set_items_from_cli(command, postprocess=postprocess, ok_returncodes=ok_returncodes)

    return registry.start(**{"name": "CLI output", **options, "items": load})


def files(registry: PickerRegistry, *, tool: str | None = None, **options) -> PickerSession:
    tool = tool or files_tool()
    options = {"name": f"Files ({tool})", **options}
    if tool != FALLBACK_TOOL:
        return cli(registry, files_command(tool), **options)

    def load(session: PickerSession) -> None:
        session.collect_items(files_fallback_items(session.options.cwd, session.throttle()))

    return registry.start(**{**options, "items": load})


def grep(registry: PickerRegistry, pattern: str, *, tool: str | None = None, **options) -> PickerSession:
    """Pick from lines containing ``pattern``, as ``path:line:column:text``."""
    tool = tool or grep_tool()
    options = {"name": f"Grep ({tool})", **options}
    if tool != FALLBACK_TOOL:
        return cli(registry, grep_command(tool, pattern), ok_returncodes=GREP_OK_RETURNCODES, **options)

    def load(session: PickerSession) -> None:
        session.collect_items(grep_fallback_items(session.options.cwd, pattern, session.throttle()))

    return registry.start(**{**options, "items": load})


class _LiveCommandMatch:
    """Match callable that re-runs a search command for every new query.

    Items are replaced by the command output instead of being filtered. A
    command still running for an older query is killed first.
    """

    def __init__(self, tool: str) -> None:
        self.tool = tool
        self.session: PickerSession | None = None
        self.handle: IngestHandle | None = None
        self.last_tick: int | None = None

    def bind(self, session: PickerSession) -> list[object]:
        self.session = session
        return []

    def __call__(self, inds, stritems, query) -> None:
        session = self.session
        if session is None:
            return None
        tick = session.tick.value
        if tick == self.last_tick:
            return None
        self.last_tick = tick

        if self.handle is not None:
            self.handle.kill()
            self.handle = None
        pattern = session.state.query.text
        if not pattern:
            session.set_items([], do_match=False, tick=tick)
            return None
        self.handle = session.set_items_from_cli(
            grep_command(self.tool, pattern),
            do_match=False,
            tick=tick,
            ok_returncodes=GREP_OK_RETURNCODES,
        )
        return None


def grep_live(registry: PickerRegistry, *, tool: str | None = None, **options) -> PickerSession:
    """Pick from search results that follow the query as it is typed."""
    tool = tool or grep_tool()
    if tool == FALLBACK_TOOL or not is_executable(tool):
        raise PickerConfigError("`grep_live` needs a non-fallback executable tool.")
    matcher = _LiveCommandMatch(tool)
    return registry.start(**{"name": f"Grep live ({tool})", **options, "items": matcher.bind, "match": matcher})
