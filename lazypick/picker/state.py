"""Everything a picker session mutates, kept in one dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..items import ItemStore
from ..query import Query

STATUS_ACTIVE = "active"
STATUS_STOPPED = "stopped"


@dataclass
class PickerState:
    source_name: str
    query: Query
    items: ItemStore = field(default_factory=ItemStore)
    match_inds: list[int] | None = None
    current_ind: int | None = None
    visible_from: int | None = None
    visible_to: int | None = None
    status: str = STATUS_ACTIVE
    is_busy: bool = False
    busy_since: float | None = None
    busy_shown: bool = False
    cache: dict[str, list[int]] = field(default_factory=dict)
    refine_count: int = 0
    refine_orig_name: str | None = None
    message: str = ""
    result: object = None
