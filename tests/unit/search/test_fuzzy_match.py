from __future__ import annotations

import re
import unittest

from lazypick.runtime.scheduler import YieldThrottle
from lazypick.search.fuzzy import (
    MATCH_EXACT,
    MATCH_FUZZY,
    MATCH_NOSORT,
    default_match,
    find_query,
    match_filter,
    match_fuzzy_single,
    match_offsets,
    parse_query,
)


def run_match(stritems: list[str], query: str, inds: list[int] | None = None) -> list[int]:
    steps = default_match(inds, stritems, list(query), yield_interval=0)
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value


class ParseQueryTests(unittest.TestCase):
    def test_mode_markers_are_detected_and_stripped(self) -> None:
        self.assertEqual(parse_query(list("abc")).match_type, MATCH_FUZZY)
        self.assertEqual(parse_query(list("*abc")).tokens, ("a", "b", "c"))

        plain = parse_query(list("'abc"))
        self.assertEqual((plain.match_type, plain.tokens), (MATCH_EXACT, ("a", "b", "c")))

        start = parse_query(list("^ab"))
        self.assertTrue(start.anchor_start)
        self.assertFalse(start.anchor_end)

        end = parse_query(list("ab$"))
        self.assertTrue(end.anchor_end)
        self.assertEqual(end.tokens, ("a", "b"))

    def test_dollar_is_literal_after_forced_modes(self) -> None:
        self.assertEqual(parse_query(list("*a$")).tokens, ("a", "$"))
        self.assertEqual(parse_query(list("'a$")).match_type, MATCH_EXACT)
        self.assertFalse(parse_query(list("'a$")).anchor_end)

    def test_markers_alone_do_not_filter(self) -> None:
        for query in ("'", "^", "$", "*", "^$"):
            with self.subTest(query=query):
                self.assertEqual(parse_query(list(query)).match_type, MATCH_NOSORT)

    def test_single_plain_character_uses_exact_search(self) -> None:
        self.assertEqual(parse_query(["a"]).match_type, MATCH_EXACT)

    def test_spaces_split_groups(self) -> None:
        plan = parse_query(list("ab  c "))

        self.assertTrue(plan.is_grouped)
        self.assertEqual(plan.groups, (("a", "b"), ("c",)))
        self.assertEqual(plan.tokens, ("a", "b", "c"))

    def test_only_end_anchored_exact_queries_rescan_everything(self) -> None:
        self.assertTrue(parse_query(list("ab$")).rescans_all)
        self.assertFalse(parse_query(list("^ab")).rescans_all)
        self.assertFalse(parse_query(list("ab")).rescans_all)


class FuzzyAlignmentTests(unittest.TestCase):
    def test_find_query_counts_contiguous_groups(self) -> None:
        self.assertEqual(find_query("ab_c", ["a", "b", "c"], 0), (2, 0, 3))
        self.assertEqual(find_query("abc", ["a", "b", "c"], 0), (1, 0, 2))
        self.assertIsNone(find_query("acb", ["a", "b", "c"], 0))

    def test_width_is_minimised_over_first_token_positions(self) -> None:
        record = match_fuzzy_single("abxxc_abxc", 7, ["a", "b", "c"])

        self.assertEqual(record, (2, 3, 6, 7))

    def test_fewer_groups_win_over_earlier_start(self) -> None:
        record = match_fuzzy_single("axbxc abc", 0, ["a", "b", "c"])

        self.assertEqual(record, (1, 2, 6, 0))

    def test_greedy_rescan_is_kept_as_an_approximation(self) -> None:
        # "a" then "bc" at offsets 5 and 6 would give two groups; left-most chains see three.
        record = match_fuzzy_single("aaxbbbc", 0, ["a", "b", "c"])

        self.assertEqual(record[0], 3)

    def test_non_matching_candidate_has_no_record(self) -> None:
        self.assertIsNone(match_fuzzy_single("cba", 0, ["a", "b", "c"]))


class MatchFilterTests(unittest.TestCase):
    def test_exact_records_carry_match_start(self) -> None:
        plan = parse_query(list("'an"))
        steps = match_filter([0, 1, 2], ["banana", "and", "xyz"], plan, YieldThrottle(0))
        records = None
        while records is None:
            try:
                next(steps)
            except StopIteration as done:
                records = done.value

        self.assertEqual(records, [(1, 0, 1, 0), (1, 0, 0, 1)])

    def test_end_anchor_ignores_narrowed_candidates(self) -> None:
        self.assertEqual(run_match(["md", "m", "xm"], "m$", inds=[0]), [1, 2])


class DefaultMatchTests(unittest.TestCase):
    items = ["apple", "apricot", "banana"]

    def test_fuzzy_ties_fall_back_to_original_order(self) -> None:
        self.assertEqual(run_match(self.items, "ap"), [0, 1])

    def test_exact_substring_orders_by_start_then_index(self) -> None:
        self.assertEqual(run_match(self.items, "'ap"), [0, 1])
        self.assertEqual(run_match(["xab", "ab", "yyab"], "'ab"), [1, 0, 2])

    def test_exact_mode_returns_same_items_as_substring_presence(self) -> None:
        stritems = ["zabcz", "abc", "a_b_c", "xx"]
        expected = [i for i, s in enumerate(stritems) if "abc" in s]

        self.assertEqual(sorted(run_match(stritems, "'abc")), expected)

    def test_start_and_end_anchors(self) -> None:
        stritems = ["abcx", "xabc", "abc"]

        self.assertEqual(run_match(stritems, "^abc"), [0, 2])
        self.assertEqual(run_match(stritems, "abc$"), [2, 1])

    def test_regex_metacharacters_are_literal(self) -> None:
        self.assertEqual(run_match(["a.b", "axb"], "'a.b"), [0])

    def test_grouped_query_prefers_fewer_group_breaks(self) -> None:
        self.assertEqual(run_match(["a_b_c", "ab_x_c"], "ab c"), [1, 0])

    def test_empty_query_keeps_every_item_in_order(self) -> None:
        self.assertEqual(run_match(self.items, "", inds=[2]), [0, 1, 2])

    def test_markers_only_keep_candidates_sorted(self) -> None:
        self.assertEqual(run_match(self.items, "'", inds=[2, 0]), [0, 2])

    def test_repeated_runs_are_identical(self) -> None:
        stritems = ["a_b", "ab", "ba_b", "xab", "a__b", "ab"] * 5
        first = run_match(stritems, "ab")

        for _ in range(3):
            self.assertEqual(run_match(stritems, "ab"), first)

    def test_match_yields_when_throttle_is_due(self) -> None:
        steps = default_match(None, ["ab", "ba", "aab"], ["a", "b"], yield_interval=0)
        n_yields = 0
        while True:
            try:
                next(steps)
            except StopIteration as done:
                ranked = done.value
                break
            n_yields += 1

        self.assertGreater(n_yields, 0)
        self.assertEqual(ranked, [0, 2])


class MatchOffsetsTests(unittest.TestCase):
    def test_fuzzy_offsets_follow_best_alignment(self) -> None:
        self.assertEqual(match_offsets("axbxc abc", ["a", "b", "c"]), [6, 7, 8])

    def test_exact_offsets_are_consecutive(self) -> None:
        self.assertEqual(match_offsets("xxabc", list("'ab")), [2, 3])

    def test_non_matching_and_empty_queries(self) -> None:
        self.assertIsNone(match_offsets("xyz", ["a", "b"]))
        self.assertEqual(match_offsets("xyz", []), [])

    def test_invalid_characters_do_not_raise(self) -> None:
        try:
            match_offsets("a(b", list("'a("))
        except re.error:
            self.fail("exact patterns are escaped")


if __name__ == "__main__":
    unittest.main()
