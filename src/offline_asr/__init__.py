"""Offline ASR front end - log-Mel features, greedy CTC decoder, postprocess, WER."""

from offline_asr.metrics import compute_wer
from offline_asr.postprocess import SILENCE, post_process

__all__ = ["SILENCE", "compute_wer", "post_process"]
