"""Cooperative scheduler for interruptible matching work.

Tasks are plain generators that ``yield`` at throttled points. Before resuming
a task, and again before committing its return value, the scheduler checks
whether the owning session is still active and whether the query tick has
moved on. Stale tasks are closed and their results dropped without error.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass

from ..query import QueryTick

log = logging.getLogger(__name__)

DEFAULT_YIELD_INTERVAL = 0.010


class YieldThrottle:
    """Wall-clock throttle deciding when a long loop should yield.

    ``due()`` is cheap to call once per item; it only reports ``True`` after
    ``interval`` seconds have passed since the last positive answer. A
    non-positive interval yields on every call, which tests rely on.
    """

    def __init__(
        self,
        interval: float = DEFAULT_YIELD_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._latest = clock()

    def due(self) -> bool:
        if self.interval <= 0:
            return True
        now = self._clock()
        if now - self._latest < self.interval:
            return False
        self._latest = now
        return True


TaskSteps = Generator[None, None, object]


@dataclass
class CooperativeTask:
    """One suspended computation plus the data needed to judge staleness."""

    task_id: int
    name: str
    key: str | None
    steps: TaskSteps
    tick: int | None
    on_commit: Callable[[object], None]


class CooperativeScheduler:
    """Single-threaded round-robin runner for generator tasks.

    Spawning a task with a ``key`` supersedes any pending task with the same
    key, so at most one result per key can ever be committed.
    """

    def __init__(self, tick: QueryTick, is_active: Callable[[], bool] = lambda: True) -> None:
        self.tick = tick
        self._is_active = is_active
        self._tasks: list[CooperativeTask] = []
        self._next_task_id = 1

    @property
    def pending(self) -> bool:
        return bool(self._tasks)

    def pending_names(self) -> list[str]:
        return [task.name for task in self._tasks]

    def has_pending(self, key: str) -> bool:
        return any(task.key == key for task in self._tasks)

    def spawn(
        self,
        steps: TaskSteps,
        *,
        on_commit: Callable[[object], None],
        tick: int | None = None,
        key: str | None = None,
        name: str = "task",
    ) -> CooperativeTask:
        """Queue ``steps`` for execution. ``tick=None`` skips the query-tick check."""
        if key is not None:
            self.cancel(key)
        task = CooperativeTask(
            task_id=self._next_task_id,
            name=name,
            key=key,
            steps=steps,
            tick=tick,
            on_commit=on_commit,
        )
        self._next_task_id += 1
        self._tasks.append(task)
        return task

    def is_stale(self, task: CooperativeTask) -> bool:
        if not self._is_active():
            return True
        return task.tick is not None and task.tick != self.tick.value

    def _discard(self, task: CooperativeTask) -> None:
        if task in self._tasks:
            self._tasks.remove(task)
        task.steps.close()
        log.debug("discarded stale task %s#%d", task.name, task.task_id)

    def cancel(self, key: str) -> None:
        for task in [task for task in self._tasks if task.key == key]:
            self._discard(task)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            self._discard(task)

    def step(self) -> bool:
        """Resume every pending task once. Returns whether tasks remain."""
        for task in list(self._tasks):
            if task not in self._tasks:
                # Superseded by a task spawned earlier in this round.
                continue
            if self.is_stale(task):
                self._discard(task)
                continue
            try:
                next(task.steps)
            except StopIteration as done:
                self._tasks.remove(task)
                if self.is_stale(task):
                    log.debug("dropped result of stale task %s#%d", task.name, task.task_id)
                    continue
                task.on_commit(done.value)
            except Exception:
                self._tasks.remove(task)
                raise
        return self.pending

    def run_until_idle(self, max_rounds: int | None = None) -> bool:
        """Step until no task remains or ``max_rounds`` is exhausted."""
        rounds = 0
        while self.pending:
            if max_rounds is not None and rounds >= max_rounds:
                return False
            self.step()
            rounds += 1
        return True
