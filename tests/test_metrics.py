"""Unit tests for word error rate."""

from __future__ import annotations

import unittest

from offline_asr.metrics import compute_wer, normalize_words, word_edit_distance


class TestWer(unittest.TestCase):
    """Tests for compute_wer."""

    def test_identical(self) -> None:
        self.assertEqual(compute_wer("the cat sat", "the cat sat"), 0.0)

    def test_empty_reference(self) -> None:
        self.assertEqual(compute_wer("", ""), 0.0)
        self.assertEqual(compute_wer("", "hello"), 1.0)
        self.assertEqual(compute_wer("?!", "..."), 0.0)

    def test_substitution(self) -> None:
        self.assertAlmostEqual(compute_wer("a b c", "a x c"), 1 / 3)

    def test_deletion_and_insertion(self) -> None:
        self.assertAlmostEqual(compute_wer("a b c d", "a c d"), 0.25)
        self.assertAlmostEqual(compute_wer("a b", "a x b"), 0.5)

    def test_not_capped(self) -> None:
        """Many insertions push WER above 1.0."""
        self.assertEqual(compute_wer("a", "a b c d"), 3.0)

    def test_case_and_punctuation_ignored(self) -> None:
        self.assertEqual(compute_wer("Hello, World!", "hello world."), 0.0)

    def test_unicode_letters_kept(self) -> None:
        """Accented letters are letters, not punctuation."""
        self.assertEqual(compute_wer("Você está aí?", "você está aí"), 0.0)
        self.assertAlmostEqual(compute_wer("você está", "voce está"), 0.5)

    def test_empty_hypothesis(self) -> None:
        self.assertEqual(compute_wer("one two", ""), 1.0)


class TestHelpers(unittest.TestCase):
    """Tests for normalization and edit distance."""

    def test_normalize_words(self) -> None:
        self.assertEqual(normalize_words("  It's 3 o'clock,  snake_case "), ["its", "3", "oclock", "snakecase"])

    def test_edit_distance(self) -> None:
        self.assertEqual(word_edit_distance([], []), 0)
        self.assertEqual(word_edit_distance(["a"], []), 1)
        self.assertEqual(word_edit_distance(["a", "b", "c"], ["c", "b", "a"]), 2)


if __name__ == "__main__":
    unittest.main(verbosity=2)
