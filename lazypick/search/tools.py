"""File-listing and text-search commands plus pure-Python fallbacks."""

from __future__ import annotations

import os
import shutil
from collections.abc import Generator, Iterator
from pathlib import Path

from ..runtime.scheduler import YieldThrottle

FALLBACK_TOOL = "fallback"
FILES_TOOLS = ("rg", "fd", "git")
GREP_TOOLS = ("rg", "git")
# rg and git grep exit 1 when nothing matched.
GREP_OK_RETURNCODES = (0, 1)
TEXT_SNIFF_BYTES = 1024


def is_executable(tool: str) -> bool:
    if tool == FALLBACK_TOOL:
        return True
    return shutil.which(tool) is not None


def _first_available(tools: tuple[str, ...]) -> str:
    for tool in tools:
        if is_executable(tool):
            return tool
    return FALLBACK_TOOL


def files_tool() -> str:
    """Pick the first available file-listing tool."""
    return _first_available(FILES_TOOLS)


def grep_tool() -> str:
    """Pick the first available text-search tool."""
    return _first_available(GREP_TOOLS)


def files_command(tool: str) -> list[str]:
    if tool == "rg":
        return ["rg", "--files", "--hidden", "--no-follow", "--color=never", "-g", "!.git"]
    if tool == "fd":
        return ["fd", "--type=f", "--hidden", "--no-follow", "--color=never", "--exclude=.git"]
    if tool == "git":
        return ["git", "ls-files", "--cached", "--others", "--exclude-standard"]
    raise ValueError(f"unsupported files tool: {tool!r}")


def grep_command(tool: str, pattern: str, ignorecase: bool = False) -> list[str]:
    if tool == "rg":
        return [
            "rg",
            "--column",
            "--line-number",
            "--no-heading",
            "--hidden",
            "--no-follow",
            "--color=never",
            "--smart-case",
            "--",
            pattern,
        ]
    if tool == "git":
        cmd = ["git", "grep", "--column", "--line-number", "--color=never"]
        if ignorecase:
            cmd.append("--ignore-case")
        cmd.extend(["--", pattern])
        return cmd
    raise ValueError(f"unsupported grep tool: {tool!r}")


def is_text_file(path: Path) -> bool:
    try:
        with path.open("rb") as handle:
            head = handle.read(TEXT_SNIFF_BYTES)
    except OSError:
        return False
    return b"\0" not in head


def iter_project_files(root: Path) -> Iterator[Path]:
    """Walk ``root`` in stable order, skipping ``.git`` directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted((name for name in dirnames if name != ".git"), key=str.lower)
        base = Path(dirpath)
        for filename in sorted(filenames, key=str.lower):
            yield base / filename


def _relative_label(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def files_fallback_items(root: Path, throttle: YieldThrottle) -> Generator[None, None, list[str]]:
    items: list[str] = []
    for path in iter_project_files(root):
        if throttle.due():
            yield
        if path.is_file() and is_text_file(path):
            items.append(_relative_label(path, root))
    return items


def grep_fallback_items(
    root: Path,
    pattern: str,
    throttle: YieldThrottle,
) -> Generator[None, None, list[str]]:
    """Search text files for ``pattern`` as a plain substring.

    Items use the ``path:line:column:text`` layout of ``rg --column``.
    """
    files = yield from files_fallback_items(root, throttle)
    items: list[str] = []
    for label in files:
        if throttle.due():
            yield
        try:
            text = (root / label).read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        for lnum, line in enumerate(text.splitlines(), start=1):
            col = line.find(pattern)
            if col >= 0:
                items.append(f"{label}:{lnum}:{col + 1}:{line}")
    return items
