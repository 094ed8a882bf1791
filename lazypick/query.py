"""Query model: editable token sequence plus caret.

Every content change bumps a shared :class:`QueryTick`. The tick is the only
signal asynchronous work uses to decide whether its result is still wanted.
"""

from __future__ import annotations

from collections.abc import Iterable


class QueryTick:
    """Monotonically increasing counter shared by queries and background work."""

    def __init__(self, value: int = 0) -> None:
        self.value = value

    def bump(self) -> int:
        self.value += 1
        return self.value


def is_word_char(ch: str) -> bool:
    """Return whether ``ch`` belongs to the "word" class used by ``delete_word``."""
    return ch.isalnum() or ch == "_"


def is_query_char(ch: str) -> bool:
    """Accept only single printable characters as query tokens."""
    return len(ch) == 1 and ord(ch) > 31


def query_is_ignorecase(tokens: Iterable[str], case_mode: str) -> bool:
    """Resolve case folding for ``tokens`` under ``case_mode``.

    ``"ignore"`` always folds, ``"respect"`` never folds and ``"smart"`` folds
    unless the query contains an upper-case character.
    """
    if case_mode == "respect":
        return False
    if case_mode == "ignore":
        return True
    return not any(ch.isupper() for ch in tokens)


class Query:
    """Ordered single-character tokens with a 0-based caret in ``[0, len]``."""

    def __init__(self, tick: QueryTick, tokens: Iterable[str] = ()) -> None:
        self.tick = tick
        self.tokens: list[str] = list(tokens)
        self.caret = len(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    @property
    def text(self) -> str:
        return "".join(self.tokens)

    def _changed(self) -> None:
        self.tick.bump()

    def insert(self, char: str) -> bool:
        """Insert one character at the caret. Returns ``False`` for rejected input."""
        if not is_query_char(char):
            return False
        self.tokens.insert(self.caret, char)
        self.caret += 1
        self._changed()
        return True

    def delete_left(self, n: int = 1) -> int:
        """Delete up to ``n`` tokens left of the caret, returning how many were removed."""
        left = max(self.caret - max(0, n), 0)
        removed = self.caret - left
        del self.tokens[left:self.caret]
        self.caret = left
        self._changed()
        return removed

    def delete_right(self, n: int = 1) -> int:
        """Delete up to ``n`` tokens right of the caret."""
        right = min(self.caret + max(0, n), len(self.tokens))
        removed = right - self.caret
        del self.tokens[self.caret:right]
        self._changed()
        return removed

    def delete_word(self) -> int:
        """Delete the maximal run of same-class characters left of the caret."""
        if self.caret == 0:
            return 0
        ref_is_word = is_word_char(self.tokens[self.caret - 1])
        n_del = 0
        for i in range(self.caret - 1, -1, -1):
            if is_word_char(self.tokens[i]) != ref_is_word:
                break
            n_del += 1
        return self.delete_left(n_del)

    def move_caret(self, delta: int) -> None:
        self.move_caret_to(self.caret + delta)

    def move_caret_to(self, pos: int) -> None:
        self.caret = max(0, min(pos, len(self.tokens)))

    def set_query(self, tokens: Iterable[str]) -> None:
        """Replace all tokens and put the caret at the end."""
        self.tokens = list(tokens)
        self.caret = len(self.tokens)
        self._changed()

    def paste(self, text: str) -> int:
        """Insert every character of ``text``; returns the number accepted."""
        return sum(1 for ch in text if self.insert(ch))
