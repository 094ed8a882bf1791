from __future__ import annotations

import random
import unittest

from lazypick.runtime.scheduler import YieldThrottle
from lazypick.search.sort import sort_match_records


def ranked(records, interval: float = 0) -> list[int]:
    steps = sort_match_records(records, YieldThrottle(interval))
    while True:
        try:
            next(steps)
        except StopIteration as done:
            return done.value


class BucketSortTests(unittest.TestCase):
    def test_orders_by_groups_then_width_then_start_then_index(self) -> None:
        records = [
            (2, 1, 0, 0),
            (1, 3, 0, 1),
            (1, 1, 4, 2),
            (1, 1, 0, 5),
            (1, 1, 0, 3),
        ]

        self.assertEqual(ranked(records), [3, 5, 2, 1, 0])

    def test_matches_a_full_tuple_sort(self) -> None:
        rng = random.Random(7)
        records = [(rng.randint(1, 3), rng.randint(0, 4), rng.randint(0, 4), index) for index in range(300)]
        rng.shuffle(records)

        expected = [record[3] for record in sorted(records)]

        self.assertEqual(ranked(records), expected)

    def test_empty_input(self) -> None:
        self.assertEqual(ranked([]), [])


if __name__ == "__main__":
    unittest.main()
