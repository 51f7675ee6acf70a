"""Greedy CTC decoder and vocabulary."""

from offline_asr.decoder.ctc_greedy import (
    CTCGreedyDecoder,
    as_logits_matrix,
    collapse_ctc,
    ctc_greedy_decode,
    greedy_path,
)
from offline_asr.decoder.vocabulary import BOUNDARY_MARKER, Vocabulary

__all__ = [
    "BOUNDARY_MARKER",
    "CTCGreedyDecoder",
    "Vocabulary",
    "as_logits_matrix",
    "collapse_ctc",
    "ctc_greedy_decode",
    "greedy_path",
]
