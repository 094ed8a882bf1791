"""Picker session: query edits, matching, selection, and named actions.

A session owns one query, one item store, and the ranked match indexes.
Matching runs as cooperative tasks on the session's scheduler and items from
external commands arrive through process ingest; both are advanced by
``pump()``. Results are committed only if the query tick they were started
with is still current.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass, replace
from functools import partial

from ..config import PickerError, PickerOptions
from ..query import Query, QueryTick, query_is_ignorecase
from ..runtime.ingest import IngestHandle, ProcessIngest
from ..runtime.scheduler import CooperativeScheduler, YieldThrottle
from ..search.fuzzy import default_match, parse_query
from .state import STATUS_ACTIVE, STATUS_STOPPED, PickerState
from .view import NullRenderer, PickerInfo, PickerRenderer, build_info, build_view

log = logging.getLogger(__name__)

MATCH_TASK_KEY = "match"
ITEMS_TASK_KEY = "items"
COLLECT_TASK_KEY = "collect-items"


@dataclass(frozen=True)
class PickerMatches:
    all: list[object]
    all_inds: list[int]
    current: object
    current_ind: int | None


class PickerSession:
    """One interactive selection over a list of items."""

    def __init__(
        self,
        options: PickerOptions,
        *,
        tick: QueryTick,
        renderer: PickerRenderer | None = None,
        clock: Callable[[], float] = time.monotonic,
        notify: Callable[[str], None] | None = None,
        on_stop: Callable[[PickerSession], None] | None = None,
        ingest: ProcessIngest | None = None,
    ) -> None:
        self.options = options
        self.tick = tick
        self.renderer: PickerRenderer = renderer if renderer is not None else NullRenderer()
        self.clock = clock
        self.notify = notify
        self.ingest = ingest if ingest is not None else ProcessIngest()
        self.scheduler = CooperativeScheduler(tick, is_active=lambda: self.is_active)
        self.state = PickerState(source_name=options.name, query=Query(tick))
        self._on_stop = on_stop
        self._ingest_do_match: dict[IngestHandle, bool] = {}
        self._pending_appends: list[object] = []

        self.tick.bump()
        self._set_busy(True)
        self._load_source()

    # status
    @property
    def is_active(self) -> bool:
        return self.state.status == STATUS_ACTIVE

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy

    @property
    def status(self) -> str:
        if not self.is_active:
            return STATUS_STOPPED
        return "busy" if self.state.is_busy else "ready"

    @property
    def query(self) -> list[str]:
        return list(self.state.query.tokens)

    @property
    def items(self) -> list[object] | None:
        return self.state.items.items

    @property
    def result(self) -> object:
        """Chosen item (or items for ``choose_all``) once the session stopped."""
        return self.state.result

    def throttle(self) -> YieldThrottle:
        return YieldThrottle(self.options.delay_async, self.clock)

    def info(self) -> PickerInfo:
        return build_info(self.state)

    # items
    def _load_source(self) -> None:
        items = self.options.items
        if callable(items):
            items = items(self)
            if items is None:
                return
        self.set_items(items)

    def set_items(self, items: Sequence[object], *, do_match: bool = True, tick: int | None = None) -> None:
        """Replace all items. Display strings are derived in a cooperative task.

        With ``tick`` set, the new items are dropped if the query changes
        before they are ready.
        """
        if not isinstance(items, (list, tuple)):
            raise PickerError("`items` should be a list.")
        if not self.is_active:
            return
        self._pending_appends = []
        self._set_busy(True)
        steps = self.state.items.build(
            items,
            fold=self.options.case_mode != "respect",
            throttle=self.throttle(),
        )
        self.scheduler.spawn(
            steps,
            key=ITEMS_TASK_KEY,
            tick=tick,
            name="set-items",
            on_commit=lambda snapshot: self._commit_items(snapshot, do_match),
        )

    def _commit_items(self, snapshot, do_match: bool) -> None:
        self.scheduler.cancel(MATCH_TASK_KEY)
        self.state.items.commit(snapshot)
        appended, self._pending_appends = self._pending_appends, []
        if appended:
            self.state.items.append(appended)
        self.state.cache.clear()
        self._set_busy(False)
        self.state.match_inds = list(range(len(self.state.items)))
        self._set_current_ind(0, force_update=True)
        if do_match:
            self._match()
        else:
            self._render()

    def append_items(self, new_items: Sequence[object]) -> None:
        """Append items without touching existing ones, then re-match."""
        if not isinstance(new_items, (list, tuple)):
            raise PickerError("`items` should be a list.")
        if not self.is_active:
            return
        if self.scheduler.has_pending(ITEMS_TASK_KEY):
            # Joins the items still being built; committed together with them.
            self._pending_appends.extend(new_items)
            return
        store = self.state.items
        if not store.is_loaded:
            self.set_items(new_items)
            return
        added = store.append(new_items)
        if not added:
            return
        self.state.cache.clear()
        self.state.match_inds = [*(self.state.match_inds or []), *added]
        self._match()

    def collect_items(self, steps: Generator[None, None, list[object]]) -> None:
        """Run a cooperative item producer and use its return value as items."""
        if not self.is_active:
            return
        self.scheduler.spawn(steps, key=COLLECT_TASK_KEY, name="collect-items", on_commit=self.set_items)

    def set_items_from_cli(
        self,
        command: Sequence[str],
        *,
        postprocess: Callable[[list[str]], list[str]] | None = None,
        do_match: bool = True,
        tick: int | None = None,
        ok_returncodes: tuple[int, ...] = (0,),
    ) -> IngestHandle | None:
        """Spawn ``command`` and use its stdout lines as items once it exits."""
        if not self.is_active:
            return None
        handle = self.ingest.spawn(
            command,
            tick=tick,
            cwd=self.options.cwd,
            postprocess=postprocess,
            ok_returncodes=ok_returncodes,
        )
        self._ingest_do_match[handle] = do_match
        return handle

    def _drain_ingest(self) -> None:
        for result in self.ingest.drain_results():
            handle = result.handle
            do_match = self._ingest_do_match.pop(handle, True)
            if handle.killed or (handle.tick is not None and handle.tick != self.tick.value):
                log.debug("dropped output of superseded %s", handle.command[0])
                continue
            lines = result.lines
            if result.error is not None:
                log.warning("%s", result.error)
                self._notify(result.error)
                lines = []
            self.set_items(lines, do_match=do_match, tick=handle.tick)

    def _notify(self, message: str) -> None:
        self.state.message = message
        if self.notify is not None:
            self.notify(message)

    # matching
    def _match_callable(self) -> Callable[..., object]:
        if self.options.match is not None:
            return self.options.match
        return partial(default_match, yield_interval=self.options.delay_async, clock=self.clock)

    def _match(self) -> None:
        state = self.state
        if not state.items.is_loaded:
            return

        prompt = state.query.text
        if self.options.use_cache and prompt in state.cache:
            self.set_match_inds(state.cache[prompt], prompt=prompt)
            return

        tokens = state.query.tokens
        if self.options.match is None and not tokens:
            self.set_match_inds(range(len(state.items)), prompt=prompt)
            return

        ignorecase = query_is_ignorecase(tokens, self.options.case_mode)
        stritems = state.items.strings(ignorecase)
        query = [token.lower() for token in tokens] if ignorecase else list(tokens)

        self._set_busy(True)
        try:
            outcome = self._match_callable()(state.match_inds, stritems, query)
        except re.error as exc:
            log.warning("matching %r failed: %s", prompt, exc)
            outcome = []

        if isinstance(outcome, Generator):
            self.scheduler.spawn(
                _no_matches_on_pattern_error(outcome, prompt),
                key=MATCH_TASK_KEY,
                tick=self.tick.value,
                name="match",
                on_commit=lambda inds: self.set_match_inds(inds, prompt=prompt),
            )
            return
        if outcome is not None:
            self.set_match_inds(outcome, prompt=prompt)

    def set_match_inds(self, inds: Sequence[int] | None, prompt: str | None = None) -> None:
        """Commit ranked match indexes and reset selection to the first match."""
        if inds is None or not self.is_active:
            return
        self._set_busy(False)
        self.state.match_inds = list(inds)
        if self.options.use_cache:
            key = self.state.query.text if prompt is None else prompt
            self.state.cache[key] = self.state.match_inds
        self._set_current_ind(0, force_update=True)
        self._render()

    # busy indication
    def _set_busy(self, value: bool) -> None:
        state = self.state
        if value:
            if not state.is_busy:
                state.busy_since = self.clock()
            state.is_busy = True
            return
        state.is_busy = False
        state.busy_since = None
        if state.busy_shown:
            state.busy_shown = False
            self.renderer.set_busy(False)

    def _update_busy_indicator(self) -> None:
        state = self.state
        if not state.is_busy or state.busy_shown or state.busy_since is None:
            return
        if self.clock() - state.busy_since >= self.options.delay_busy:
            state.busy_shown = True
            self.renderer.set_busy(True)

    # event loop
    def has_pending_work(self) -> bool:
        return self.is_active and (self.scheduler.pending or self.ingest.has_pending())

    def pump(self) -> bool:
        """Advance ingest and cooperative tasks once. Returns whether work remains."""
        if not self.is_active:
            return False
        self._drain_ingest()
        self.scheduler.step()
        self._update_busy_indicator()
        return self.has_pending_work()

    def run_until_idle(self, timeout: float | None = None, poll_interval: float = 0.005) -> bool:
        """Pump until no work remains. Returns ``False`` if ``timeout`` expired first."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.pump():
            if deadline is not None and time.monotonic() >= deadline:
                return False
            if not self.scheduler.pending:
                time.sleep(poll_interval)
        return True

    # selection and visible window
    def _viewport_height(self) -> int:
        height = self.renderer.viewport_height()
        return max(1, height if height else self.options.window_height)

    def _set_current_ind(self, ind: int, force_update: bool = False) -> None:
        state = self.state
        if not state.items.is_loaded or not state.match_inds:
            state.current_ind = None
            state.visible_from = state.visible_to = None
            return

        n_matches = len(state.match_inds)
        ind = ind % n_matches
        visible_from, visible_to = state.visible_from, state.visible_to
        is_outside = visible_from is None or visible_to is None or not (visible_from <= ind <= visible_to)
        if force_update or is_outside:
            height = self._viewport_height()
            visible_to = min(n_matches - 1, int(ind + 0.5 * height))
            visible_from = max(0, visible_to - height + 1)
            visible_to = visible_from + min(height, n_matches) - 1

        state.current_ind = ind
        state.visible_from, state.visible_to = visible_from, visible_to

    def _render(self) -> None:
        if not self.is_active or self.state.is_busy:
            return
        self.renderer.render(build_view(self.state, self.options.direction, self._viewport_height()))

    def refresh(self) -> None:
        """Recompute the visible window around the selection and re-render."""
        if not self.is_active:
            return
        self._set_current_ind(self.state.current_ind or 0, force_update=True)
        self._render()

    def move_selection(self, by: int) -> None:
        """Move selection by ``by`` rows in display direction, wrapping only at edges."""
        state = self.state
        if not self.is_active or not state.items.is_loaded or not state.match_inds:
            return
        n_matches = len(state.match_inds)
        by = by if self.options.direction == "from_top" else -by
        current = state.current_ind or 0
        if current == 0 and by < 0:
            target = n_matches - 1
        elif current == n_matches - 1 and by > 0:
            target = 0
        else:
            target = max(0, min(current + by, n_matches - 1))
        self._set_current_ind(target)
        self._render()

    def move_to(self, position: int) -> None:
        if not self.is_active or not self.state.match_inds:
            return
        self._set_current_ind(position)
        self._render()

    def move_to_start(self) -> None:
        self.move_to(0)

    def scroll(self, direction: str) -> None:
        if direction not in ("down", "up"):
            raise PickerError(f"unknown scroll direction: {direction!r}")
        height = self._viewport_height()
        self.move_selection(height if direction == "down" else -height)

    def get_current_item(self) -> object:
        state = self.state
        if state.items.items is None or not state.match_inds or state.current_ind is None:
            return None
        return state.items.items[state.match_inds[state.current_ind]]

    def get_matches(self) -> PickerMatches:
        state = self.state
        items = state.items.items
        if items is None or state.match_inds is None:
            return PickerMatches(all=[], all_inds=[], current=None, current_ind=None)
        current_ind = None if state.current_ind is None else state.match_inds[state.current_ind]
        return PickerMatches(
            all=[items[ind] for ind in state.match_inds],
            all_inds=list(state.match_inds),
            current=self.get_current_item(),
            current_ind=current_ind,
        )

    # query edits
    def insert_char(self, char: str) -> None:
        if not self.is_active:
            return
        previous = list(self.state.query.tokens)
        if self.state.query.insert(char):
            self._match_after_insert(previous)

    def paste(self, text: str) -> None:
        if not self.is_active:
            return
        previous = list(self.state.query.tokens)
        if self.state.query.paste(text):
            self._match_after_insert(previous)

    def _match_after_insert(self, previous: list[str]) -> None:
        query = self.state.query
        # Results nest only when appending to a query that is not end-anchored.
        if query.caret < len(query) or parse_query(previous).anchor_end:
            self._rematch_all()
        else:
            self._match()

    def _rematch_all(self) -> None:
        # Candidates restart from all items.
        if self.state.items.is_loaded:
            self.state.match_inds = list(range(len(self.state.items)))
        self._match()

    def delete_query_left(self, n: int = 1) -> None:
        if not self.is_active:
            return
        self.state.query.delete_left(n)
        self._rematch_all()

    def delete_query_right(self, n: int = 1) -> None:
        if not self.is_active:
            return
        self.state.query.delete_right(n)
        self._rematch_all()

    def delete_word(self) -> None:
        if not self.is_active:
            return
        self.state.query.delete_word()
        self._rematch_all()

    def set_query(self, tokens: Sequence[str]) -> None:
        if not isinstance(tokens, (list, tuple)):
            raise PickerError("`query` should be a list.")
        if not self.is_active:
            return
        self.state.query.set_query(tokens)
        self._rematch_all()

    def move_caret(self, delta: int) -> None:
        if not self.is_active:
            return
        self.state.query.move_caret(delta)
        self._render()

    def move_caret_to(self, position: int) -> None:
        if not self.is_active:
            return
        self.state.query.move_caret_to(position)
        self._render()

    # choosing
    def choose_current(self) -> bool:
        """Pass the current item to ``choose``. Returns whether the session stopped."""
        if not self.is_active or not self.state.items.is_loaded:
            return False
        item = self.get_current_item()
        choose = self.options.choose
        keep_open = choose(item) if choose is not None else None
        if keep_open:
            return False
        self._shutdown(result=item)
        return True

    def choose_all(self) -> bool:
        if not self.is_active or not self.state.items.is_loaded:
            return False
        items = self.get_matches().all
        choose_all = self.options.choose_all
        keep_open = choose_all(items) if choose_all is not None else None
        if keep_open:
            return False
        self._shutdown(result=items)
        return True

    def refine(self) -> None:
        """Make current matches the new items, matched with the default matcher."""
        state = self.state
        if not self.is_active or not state.items.is_loaded:
            return
        matches = self.get_matches().all
        self.options = replace(self.options, match=None)
        if state.refine_orig_name is None:
            state.refine_orig_name = state.source_name
        state.refine_count += 1
        suffix = "" if state.refine_count == 1 else f" {state.refine_count}"
        state.source_name = f"{state.refine_orig_name} (Refine{suffix})"
        state.query.set_query([])
        self.set_items(matches)

    # lifecycle
    def _shutdown(self, result: object = None) -> None:
        if not self.is_active:
            return
        self.state.status = STATUS_STOPPED
        self.state.result = result
        self.ingest.kill_all()
        self._ingest_do_match.clear()
        self.scheduler.cancel_all()
        self.state.cache.clear()
        self._set_busy(False)
        self.tick.bump()
        if self._on_stop is not None:
            self._on_stop(self)

    def stop(self) -> None:
        """Stop without choosing anything."""
        self._shutdown(result=None)

    abort = stop

    def resume(self, renderer: PickerRenderer | None = None) -> None:
        """Reactivate a stopped session with its items, query and matches."""
        if self.is_active:
            return
        if renderer is not None:
            self.renderer = renderer
        self.state.status = STATUS_ACTIVE
        self.state.result = None
        self.tick.bump()
        if not self.state.items.is_loaded:
            self._set_busy(True)
            self._load_source()
            return
        self._set_current_ind(self.state.current_ind or 0, force_update=True)
        self._render()

    # named actions
    def dispatch(self, name: str) -> bool:
        """Run a named action. Returns whether the session should stop."""
        action = ACTIONS.get(name)
        if action is None:
            raise PickerError(f"unknown action: {name!r}")
        return bool(action(self))


def _no_matches_on_pattern_error(
    steps: Generator[None, None, object],
    prompt: str,
) -> Generator[None, None, object]:
    try:
        return (yield from steps)
    except re.error as exc:
        log.warning("matching %r failed: %s", prompt, exc)
        return []


def _stop(session: PickerSession) -> bool:
    session.stop()
    return True


ACTIONS: dict[str, Callable[[PickerSession], object]] = {
    "caret_left": lambda session: session.move_caret(-1),
    "caret_right": lambda session: session.move_caret(1),
    "choose": lambda session: session.choose_current(),
    "choose_all": lambda session: session.choose_all(),
    "delete_char": lambda session: session.delete_query_left(1),
    "delete_char_right": lambda session: session.delete_query_right(1),
    "delete_left": lambda session: session.delete_query_left(session.state.query.caret),
    "delete_word": lambda session: session.delete_word(),
    "move_down": lambda session: session.move_selection(1),
    "move_start": lambda session: session.move_to_start(),
    "move_up": lambda session: session.move_selection(-1),
    "refine": lambda session: session.refine(),
    "scroll_down": lambda session: session.scroll("down"),
    "scroll_up": lambda session: session.scroll("up"),
    "stop": _stop,
}
