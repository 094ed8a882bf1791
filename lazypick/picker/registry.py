"""Registry of the active picker session and the latest one for resume."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..config import PickerError, PickerOptions, build_picker_options, validate_picker_options
from ..query import QueryTick
from .session import PickerSession
from .view import PickerRenderer

log = logging.getLogger(__name__)


class PickerRegistry:
    """Tracks the active session and the most recently stopped one.

    At most one session is active. Starting a new one aborts the current
    session; a stopped session can be resumed from ``latest``.
    """

    def __init__(self, tick: QueryTick | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.tick = tick if tick is not None else QueryTick()
        self.clock = clock
        self.active: PickerSession | None = None
        self.latest: PickerSession | None = None

    @property
    def is_active(self) -> bool:
        return self.active is not None and self.active.is_active

    def start(
        self,
        options: PickerOptions | None = None,
        *,
        renderer: PickerRenderer | None = None,
        notify: Callable[[str], None] | None = None,
        **overrides,
    ) -> PickerSession:
        if options is None:
            options = build_picker_options(**overrides)
        elif overrides:
            raise PickerError("pass either `options` or keyword overrides, not both")
        options = validate_picker_options(options)

        if self.active is not None:
            log.debug("aborting active picker %r", self.active.state.source_name)
            self.active.abort()

        session = PickerSession(
            options,
            tick=self.tick,
            renderer=renderer,
            clock=self.clock,
            notify=notify,
            on_stop=self._on_stop,
        )
        if session.is_active:
            self.active = session
        return session

    def _on_stop(self, session: PickerSession) -> None:
        if self.active is session:
            self.active = None
        self.latest = session

    def stop(self) -> None:
        if self.active is not None:
            self.active.stop()

    def resume(self, renderer: PickerRenderer | None = None) -> PickerSession:
        """Resume the latest stopped session."""
        if self.is_active:
            raise PickerError("a picker is already active")
        session = self.latest
        if session is None:
            raise PickerError("there is no picker to resume")
        session.resume(renderer)
        self.active = session
        return session
