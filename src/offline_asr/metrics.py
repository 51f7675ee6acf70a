"""Word error rate (WER) between a reference and a hypothesis transcript.

WER = word-level Levenshtein distance / number of reference words.
It is not capped: a hypothesis with many insertions can score above 1.0.
"""

from __future__ import annotations

import re
from typing import List, Sequence

# Anything that is not a letter, number or whitespace (Unicode-aware).
# \w also matches "_", which is stripped as punctuation.
_NON_WORD = re.compile(r"[^\w\s]|_")


def normalize_words(text: str) -> List[str]:
    """Lowercase, drop punctuation, split on whitespace runs."""
    return _NON_WORD.sub("", text.strip().lower()).split()


def word_edit_distance(ref_words: Sequence[str], hyp_words: Sequence[str]) -> int:
    """Minimum substitutions + insertions + deletions turning ref into hyp."""
    n, m = len(ref_words), len(hyp_words)
    dp = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n + 1):
        dp[i][0] = i  # deletions
    for j in range(m + 1):
        dp[0][j] = j  # insertions

    for i in range(1, n + 1):
        for j in range(1, m + 1):
            if ref_words[i - 1] == hyp_words[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(dp[i - 1][j], dp[i][j - 1], dp[i - 1][j - 1])
    return dp[n][m]


def compute_wer(reference: str, hypothesis: str) -> float:
    """Word error rate of ``hypothesis`` against ``reference``.

    An empty reference scores 0.0 against an empty hypothesis, else 1.0.
    """
    ref_words = normalize_words(reference)
    hyp_words = normalize_words(hypothesis)
    if not ref_words:
        return 0.0 if not hyp_words else 1.0
    return word_edit_distance(ref_words, hyp_words) / len(ref_words)
