"""Greedy CTC decoder (argmax per frame, collapse repeats, drop blank).

Input: logits shape (T, V) or (1, T, V). Scores need not be normalized;
only the per-frame argmax is used.

Blank index: when it is not configured, the decoder runs twice, once with
blank = 0 and once with blank = len(vocab) - 1, and keeps the longer token
sequence (ties go to len(vocab) - 1). This is a fallback for vocabularies
whose blank convention is unknown, not a correctness guarantee.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

import numpy as np

from offline_asr.decoder.vocabulary import Vocabulary
from offline_asr.errors import DecodeFormatError, VocabularyUnavailable

logger = logging.getLogger(__name__)


def as_logits_matrix(logits: Union[np.ndarray, Sequence, object]) -> np.ndarray:
    """Convert numpy/torch/nested lists to a (T, V) float32 matrix.

    A leading batch dimension of 1 is removed. Anything that is not
    T x V or 1 x T x V raises DecodeFormatError.
    """
    if logits is None:
        raise DecodeFormatError("no logits were produced")
    # PyTorch
    if hasattr(logits, "cpu") and hasattr(logits, "numpy"):
        logits = logits.cpu().numpy()
    try:
        matrix = np.asarray(logits, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise DecodeFormatError(f"logits are not a rectangular numeric array ({e})") from e

    if matrix.ndim == 3:
        if matrix.shape[0] != 1:
            raise DecodeFormatError(f"expected batch size 1, got logits of shape {matrix.shape}")
        matrix = matrix[0]
    if matrix.ndim != 2:
        raise DecodeFormatError(f"expected T x V or 1 x T x V logits, got shape {matrix.shape}")
    if matrix.shape[0] > 0 and matrix.shape[1] == 0:
        raise DecodeFormatError("logits have no vocabulary dimension")
    return matrix


def greedy_path(matrix: np.ndarray) -> np.ndarray:
    """Best index per frame; ties go to the lowest index."""
    if matrix.shape[0] == 0:
        return np.zeros(0, dtype=np.int64)
    return np.argmax(matrix, axis=1)


def collapse_ctc(path: Sequence[int], blank_index: int) -> List[int]:
    """Collapse consecutive repeats, then drop blanks."""
    out: List[int] = []
    prev = -1
    for idx in path:
        idx = int(idx)
        if idx != blank_index and idx != prev:
            out.append(idx)
        prev = idx
    return out


class CTCGreedyDecoder:
    """Greedy CTC decoder over an index-addressed vocabulary.

    Interface:
      decoder = CTCGreedyDecoder(vocab, blank_index=None)
      text = decoder.decode(logits)   # raw text, boundary marker -> space
    """

    def __init__(self, vocab: Union[Vocabulary, Sequence[str], None], blank_index: Optional[int] = None):
        """
        Args:
            vocab: Vocabulary or list of tokens; index i maps to vocab[i].
            blank_index: CTC blank index. None enables the dual-hypothesis fallback.
        """
        if vocab is None:
            raise VocabularyUnavailable("vocabulary not loaded")
        if not isinstance(vocab, Vocabulary):
            vocab = Vocabulary(vocab)
        if blank_index is not None and not 0 <= blank_index < len(vocab):
            raise ValueError(f"blank_index {blank_index} outside vocabulary of size {len(vocab)}")
        self.vocab = vocab
        self.blank_index = blank_index

    def decode_indices(self, logits) -> List[int]:
        """Decode logits to a token index sequence."""
        path = greedy_path(as_logits_matrix(logits))
        if self.blank_index is not None:
            return collapse_ctc(path, self.blank_index)

        last = len(self.vocab) - 1
        first_blank = collapse_ctc(path, 0)
        last_blank = collapse_ctc(path, last)
        chosen = last_blank if len(last_blank) >= len(first_blank) else first_blank
        logger.debug(
            "Blank fallback: blank=0 -> %d tokens, blank=%d -> %d tokens; using blank=%d",
            len(first_blank),
            last,
            len(last_blank),
            last if chosen is last_blank else 0,
        )
        return chosen

    def indices_to_text(self, indices: Sequence[int]) -> str:
        """Join tokens; indices outside the vocabulary are skipped."""
        size = len(self.vocab)
        skipped = [i for i in indices if not 0 <= i < size]
        if skipped:
            logger.debug("Skipping %d token indices outside vocabulary of size %d", len(skipped), size)
        return "".join(self.vocab.token_text(i) for i in indices if 0 <= i < size)

    def decode(self, logits) -> str:
        """Decode logits to raw text (not post-processed)."""
        return self.indices_to_text(self.decode_indices(logits))


def ctc_greedy_decode(
    logits: np.ndarray,
    vocab: Union[Vocabulary, Sequence[str]],
    blank_index: Optional[int] = None,
) -> str:
    """Functional wrapper around CTCGreedyDecoder.decode."""
    return CTCGreedyDecoder(vocab, blank_index).decode(logits)
