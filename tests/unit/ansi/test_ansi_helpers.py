from __future__ import annotations

import unittest

from lazypick.ansi import MATCH_END, MATCH_START, RESET, char_display_width, clip_ansi_line, highlight_chars


class HighlightCharsTests(unittest.TestCase):
    def test_adjacent_offsets_share_one_run(self) -> None:
        self.assertEqual(highlight_chars("apple", [0, 1]), f"{MATCH_START}ap{MATCH_END}ple")

    def test_separate_offsets_get_separate_runs(self) -> None:
        self.assertEqual(
            highlight_chars("abc", [0, 2]),
            f"{MATCH_START}a{MATCH_END}b{MATCH_START}c{MATCH_END}",
        )

    def test_out_of_range_offsets_are_ignored(self) -> None:
        self.assertEqual(highlight_chars("ab", [-1, 5]), "ab")


class ClipAnsiLineTests(unittest.TestCase):
    def test_plain_text_is_clipped_by_columns(self) -> None:
        self.assertEqual(clip_ansi_line("abcdef", 3), "abc")

    def test_escape_sequences_do_not_count_and_styling_is_reset(self) -> None:
        styled = highlight_chars("abcdef", [0, 1, 2, 3])

        clipped = clip_ansi_line(styled, 2)

        self.assertEqual(clipped, f"{MATCH_START}ab{RESET}")

    def test_wide_characters_and_tabs(self) -> None:
        self.assertEqual(char_display_width("界", 0), 2)
        self.assertEqual(clip_ansi_line("界界", 3), "界")
        self.assertEqual(clip_ansi_line("a\tb", 9), "a" + " " * 7 + "b")


if __name__ == "__main__":
    unittest.main()
