"""Item store: original items plus derived display strings.

Display strings are computed once per ingestion. Lower-cased variants exist
only when case folding can apply, and are built on first use otherwise.
The string arrays are append-only: in-flight matching may keep reading a
shorter snapshot while new items arrive.
"""

from __future__ import annotations

from collections.abc import Generator, Mapping, Sequence
from dataclasses import dataclass

from .runtime.scheduler import YieldThrottle


def item_to_string(item: object) -> str:
    """Derive the text used for matching and display.

    Strings are used as is. Mappings and objects contribute their ``text``
    field when it is a string; anything else falls back to ``repr``.
    """
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        text = item.get("text")
    else:
        text = getattr(item, "text", None)
    if isinstance(text, str):
        return text
    return repr(item).replace("\n", " ")


@dataclass(frozen=True)
class ItemSnapshot:
    items: list[object]
    stritems: list[str]
    stritems_folded: list[str] | None


class ItemStore:
    def __init__(self) -> None:
        self.items: list[object] | None = None
        self.stritems: list[str] | None = None
        self.stritems_folded: list[str] | None = None

    @property
    def is_loaded(self) -> bool:
        return self.items is not None

    def __len__(self) -> int:
        return 0 if self.items is None else len(self.items)

    def build(
        self,
        items: Sequence[object],
        *,
        fold: bool,
        throttle: YieldThrottle,
    ) -> Generator[None, None, ItemSnapshot]:
        """Compute display strings for ``items`` as a cooperative task.

        Nothing in the store changes until the returned snapshot is committed,
        so abandoning the task midway leaves the previous items intact.
        """
        items = list(items)
        stritems: list[str] = []
        folded: list[str] | None = [] if fold else None
        for item in items:
            if throttle.due():
                yield
            text = item_to_string(item)
            stritems.append(text)
            if folded is not None:
                folded.append(text.lower())
        return ItemSnapshot(items=items, stritems=stritems, stritems_folded=folded)

    def commit(self, snapshot: ItemSnapshot) -> None:
        self.items = snapshot.items
        self.stritems = snapshot.stritems
        self.stritems_folded = snapshot.stritems_folded

    def append(self, new_items: Sequence[object]) -> range:
        """Append ``new_items`` in place and return their index range."""
        if self.items is None or self.stritems is None:
            raise ValueError("cannot append before items are set")
        start = len(self.items)
        for item in new_items:
            text = item_to_string(item)
            self.items.append(item)
            self.stritems.append(text)
            if self.stritems_folded is not None:
                self.stritems_folded.append(text.lower())
        return range(start, len(self.items))

    def strings(self, ignorecase: bool) -> list[str]:
        """Return the string array matching should read."""
        if self.stritems is None:
            return []
        if not ignorecase:
            return self.stritems
        if self.stritems_folded is None:
            self.stritems_folded = [text.lower() for text in self.stritems]
        return self.stritems_folded

    def clear(self) -> None:
        self.items = None
        self.stritems = None
        self.stritems_folded = None
