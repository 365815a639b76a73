from __future__ import annotations

import hashlib
import unittest
from unittest.mock import patch

from fairdraw.draw import derive_material, select_winners
from fairdraw.errors import InvalidWinnerCount


def _reference_shuffle(candidates, material: bytes, k: int):
    arr = list(candidates)
    n = len(arr)
    for i in range(k):
        h = hashlib.sha256(material + bytes([i])).digest()
        j = (int.from_bytes(h[:4], "big") % (n - i)) + i
        arr[i], arr[j] = arr[j], arr[i]
    return arr[:k]


class DeriveMaterialTests(unittest.TestCase):
    def test_concatenates_as_utf8(self) -> None:
        self.assertEqual(
            derive_material("tip", "seed", "first"),
            hashlib.sha256(b"tipseedfirst").digest(),
        )


class SelectWinnersTests(unittest.TestCase):
    def setUp(self) -> None:
        self.candidates = [f"user{i}" for i in range(20)]
        self.material = derive_material("0" * 64, "s3cr3t", "first")

    def test_deterministic(self) -> None:
        first = select_winners(self.candidates, self.material, 5)
        second = select_winners(self.candidates, self.material, 5)
        self.assertEqual(first, second)

    def test_matches_reference_algorithm(self) -> None:
        for k in (1, 5, 20):
            self.assertEqual(
                select_winners(self.candidates, self.material, k),
                _reference_shuffle(self.candidates, self.material, k),
            )

    def test_winners_are_distinct_members(self) -> None:
        winners = select_winners(self.candidates, self.material, 7)
        self.assertEqual(len(winners), 7)
        self.assertEqual(len(set(winners)), 7)
        self.assertTrue(set(winners) <= set(self.candidates))

    def test_prefix_is_stable_across_counts(self) -> None:
        short = select_winners(self.candidates, self.material, 3)
        long = select_winners(self.candidates, self.material, 10)
        self.assertEqual(long[:3], short)

    def test_full_count_is_permutation(self) -> None:
        winners = select_winners(self.candidates, self.material, len(self.candidates))
        self.assertCountEqual(winners, self.candidates)

    def test_zero_consumes_no_randomness(self) -> None:
        with patch("fairdraw.draw.selection._step_value") as step:
            self.assertEqual(select_winners(self.candidates, self.material, 0), [])
        step.assert_not_called()

    def test_invalid_counts(self) -> None:
        with self.assertRaises(InvalidWinnerCount):
            select_winners(self.candidates, self.material, 21)
        with self.assertRaises(InvalidWinnerCount):
            select_winners(self.candidates, self.material, -1)

    def test_input_not_mutated(self) -> None:
        before = list(self.candidates)
        select_winners(self.candidates, self.material, 10)
        self.assertEqual(self.candidates, before)

    def test_duplicates_rejected(self) -> None:
        with self.assertRaises(ValueError):
            select_winners(["a", "a", "b"], self.material, 1)

    def test_material_changes_outcome(self) -> None:
        other = derive_material("0" * 64, "s3cr3t", "second")
        self.assertNotEqual(
            select_winners(self.candidates, self.material, 20),
            select_winners(self.candidates, other, 20),
        )


if __name__ == "__main__":
    unittest.main()
