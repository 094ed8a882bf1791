"""What the rendering collaborator receives.

The session never draws anything itself. On every commit it builds a
:class:`PickerView` for the visible window and hands it to a renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .state import PickerState


@dataclass(frozen=True)
class PickerInfo:
    source_name: str
    n_items_total: int | None
    n_items_matched: int | None
    current_position: int | None
    is_busy: bool


@dataclass(frozen=True)
class PickerView:
    """Visible slice of ranked items in display order.

    ``current_line`` counts rows from the top of the viewport, including the
    ``n_empty_top`` padding rows used by bottom-to-top presentation.
    """

    items: tuple[object, ...]
    current_line: int | None
    n_empty_top: int
    query: str
    caret: int
    info: PickerInfo


class PickerRenderer(Protocol):
    def viewport_height(self) -> int | None: ...

    def render(self, view: PickerView) -> None: ...

    def set_busy(self, busy: bool) -> None: ...


class NullRenderer:
    """Renderer for headless use: accepts views and draws nothing."""

    def __init__(self, height: int | None = None) -> None:
        self.height = height
        self.last_view: PickerView | None = None

    def viewport_height(self) -> int | None:
        return self.height

    def render(self, view: PickerView) -> None:
        self.last_view = view

    def set_busy(self, busy: bool) -> None:
        pass


def build_info(state: PickerState) -> PickerInfo:
    has_items = state.items.is_loaded and state.match_inds is not None
    return PickerInfo(
        source_name=state.source_name,
        n_items_total=len(state.items) if state.items.is_loaded else None,
        n_items_matched=len(state.match_inds) if has_items else None,
        current_position=None if state.current_ind is None else state.current_ind + 1,
        is_busy=state.is_busy,
    )


def build_view(state: PickerState, direction: str, height: int) -> PickerView:
    """Build the view for ``state``'s visible window."""
    items_to_show: list[object] = []
    current_line: int | None = None
    n_empty_top = 0
    items = state.items.items
    visible_from, visible_to = state.visible_from, state.visible_to
    if items is not None and state.match_inds and visible_from is not None and visible_to is not None:
        is_direction_bottom = direction == "from_bottom"
        positions = range(visible_from, visible_to + 1)
        if is_direction_bottom:
            positions = reversed(positions)
        for position in positions:
            items_to_show.append(items[state.match_inds[position]])
            if position == state.current_ind:
                current_line = len(items_to_show) - 1
        if is_direction_bottom:
            n_empty_top = max(0, height - len(items_to_show))
        if current_line is not None:
            current_line += n_empty_top

    return PickerView(
        items=tuple(items_to_show),
        current_line=current_line,
        n_empty_top=n_empty_top,
        query=state.query.text,
        caret=state.query.caret,
        info=build_info(state),
    )
