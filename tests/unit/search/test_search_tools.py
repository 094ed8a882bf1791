from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazypick.runtime.scheduler import YieldThrottle
from lazypick.search import tools


def drive(steps):
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value


class ToolSelectionTests(unittest.TestCase):
    def test_first_available_tool_wins(self) -> None:
        with mock.patch("lazypick.search.tools.shutil.which", side_effect=lambda name: "/bin/fd" if name == "fd" else None):
            self.assertEqual(tools.files_tool(), "fd")
            self.assertEqual(tools.grep_tool(), tools.FALLBACK_TOOL)

    def test_fallback_is_always_executable(self) -> None:
        with mock.patch("lazypick.search.tools.shutil.which", return_value=None):
            self.assertTrue(tools.is_executable(tools.FALLBACK_TOOL))
            self.assertFalse(tools.is_executable("rg"))

    def test_commands_end_with_pattern(self) -> None:
        self.assertEqual(tools.grep_command("rg", "-x")[-2:], ["--", "-x"])
        self.assertIn("--ignore-case", tools.grep_command("git", "x", ignorecase=True))
        self.assertEqual(tools.files_command("git")[:2], ["git", "ls-files"])

    def test_unknown_tool_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            tools.files_command("find")
        with self.assertRaises(ValueError):
            tools.grep_command("fallback", "x")


class FallbackItemsTests(unittest.TestCase):
    def _make_tree(self, root: Path) -> None:
        (root / "b.txt").write_text("nothing here\n", encoding="utf-8")
        (root / "src").mkdir()
        (root / "src" / "a.py").write_text("import os\nvalue = 1  # needle\n", encoding="utf-8")
        (root / "blob.bin").write_bytes(b"needle\0\1\2")
        (root / ".git").mkdir()
        (root / ".git" / "HEAD").write_text("needle\n", encoding="utf-8")

    def test_files_fallback_lists_text_files_relative_to_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            self._make_tree(root)

            items = drive(tools.files_fallback_items(root, YieldThrottle(0)))

            self.assertEqual(items, ["b.txt", "src/a.py"])

    def test_grep_fallback_reports_line_and_one_based_column(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            self._make_tree(root)

            items = drive(tools.grep_fallback_items(root, "needle", YieldThrottle(0)))

            self.assertEqual(items, ["src/a.py:2:14:value = 1  # needle"])


if __name__ == "__main__":
    unittest.main()
