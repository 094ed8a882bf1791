from __future__ import annotations

import unittest

from lazypick.query import Query, QueryTick, is_query_char, query_is_ignorecase


class QueryEditTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tick = QueryTick()

    def test_insert_places_token_at_caret_and_bumps_tick(self) -> None:
        query = Query(self.tick, "ac")
        query.move_caret_to(1)

        self.assertTrue(query.insert("b"))

        self.assertEqual(query.tokens, ["a", "b", "c"])
        self.assertEqual(query.caret, 2)
        self.assertEqual(self.tick.value, 1)

    def test_insert_rejects_control_and_multi_character_input(self) -> None:
        query = Query(self.tick)

        self.assertFalse(query.insert("\x1b"))
        self.assertFalse(query.insert("ab"))
        self.assertFalse(query.insert(""))

        self.assertEqual(query.tokens, [])
        self.assertEqual(self.tick.value, 0)

    def test_is_query_char_accepts_space_and_unicode(self) -> None:
        self.assertTrue(is_query_char(" "))
        self.assertTrue(is_query_char("é"))
        self.assertFalse(is_query_char("\t"))

    def test_delete_left_clamps_to_caret(self) -> None:
        query = Query(self.tick, "abcd")
        query.move_caret_to(2)

        removed = query.delete_left(5)

        self.assertEqual(removed, 2)
        self.assertEqual(query.tokens, ["c", "d"])
        self.assertEqual(query.caret, 0)

    def test_delete_right_keeps_caret(self) -> None:
        query = Query(self.tick, "abcd")
        query.move_caret_to(1)

        removed = query.delete_right(2)

        self.assertEqual(removed, 2)
        self.assertEqual(query.text, "ad")
        self.assertEqual(query.caret, 1)

    def test_delete_word_removes_run_of_same_class(self) -> None:
        query = Query(self.tick, "foo bar_1")
        self.assertEqual(query.delete_word(), 5)
        self.assertEqual(query.text, "foo ")

        self.assertEqual(query.delete_word(), 1)
        self.assertEqual(query.text, "foo")

    def test_delete_word_at_start_is_noop(self) -> None:
        query = Query(self.tick, "abc")
        query.move_caret_to(0)

        self.assertEqual(query.delete_word(), 0)
        self.assertEqual(query.text, "abc")
        self.assertEqual(self.tick.value, 0)

    def test_caret_moves_clamp_and_do_not_bump_tick(self) -> None:
        query = Query(self.tick, "ab")

        query.move_caret(-10)
        self.assertEqual(query.caret, 0)
        query.move_caret(10)
        self.assertEqual(query.caret, 2)

        self.assertEqual(self.tick.value, 0)

    def test_insert_then_delete_restores_tokens(self) -> None:
        query = Query(self.tick, "ap")

        query.insert("x")
        query.delete_left(1)

        self.assertEqual(query.tokens, ["a", "p"])
        self.assertEqual(query.caret, 2)

    def test_set_query_moves_caret_to_end(self) -> None:
        query = Query(self.tick)

        query.set_query(["x", "y"])

        self.assertEqual(query.caret, 2)
        self.assertEqual(self.tick.value, 1)

    def test_paste_inserts_each_printable_character(self) -> None:
        query = Query(self.tick)

        accepted = query.paste("a\nb c")

        self.assertEqual(accepted, 4)
        self.assertEqual(query.text, "ab c")


class CaseModeTests(unittest.TestCase):
    def test_smart_case_folds_only_lowercase_queries(self) -> None:
        self.assertTrue(query_is_ignorecase("abc", "smart"))
        self.assertFalse(query_is_ignorecase("aBc", "smart"))

    def test_ignore_and_respect_are_unconditional(self) -> None:
        self.assertTrue(query_is_ignorecase("ABC", "ignore"))
        self.assertFalse(query_is_ignorecase("abc", "respect"))


if __name__ == "__main__":
    unittest.main()
