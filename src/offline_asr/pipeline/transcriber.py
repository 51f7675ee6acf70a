"""End-to-end offline loop: audio -> normalize -> log-Mel -> model -> greedy CTC -> text -> WER.

Glue that wires the components for one complete utterance. The model is a
callable (model_forward) so you can plug ONNX Runtime / PyTorch / TensorRT;
this package never runs the network itself.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np

from offline_asr.audio.config import FeatureConfig, NormalizationConfig, PipelineConfig
from offline_asr.audio.features import LogMelFeatures, MelFeatureExtractor
from offline_asr.audio.normalize import SignalStats, as_mono_buffer, prepare_audio, signal_stats
from offline_asr.decoder import CTCGreedyDecoder, Vocabulary
from offline_asr.errors import InferenceTimeout, InvalidInput
from offline_asr.metrics import compute_wer
from offline_asr.postprocess import is_silence, post_process

logger = logging.getLogger(__name__)

# Model forward: features [1, n_mels, T] float32, length [1] int64 -> logits (T', V) or (1, T', V)
ModelForward = Callable[[np.ndarray, np.ndarray], np.ndarray]


@dataclass
class TranscriptionResult:
    """Transcript plus the diagnostics of one run."""

    text: str
    raw_text: str
    n_frames: int
    padded_frames: int
    duration_sec: float
    stats: SignalStats
    wer: Optional[float] = None
    timings_ms: Dict[str, float] = field(default_factory=dict)


def run_with_timeout(
    model_forward: ModelForward,
    features: np.ndarray,
    length: np.ndarray,
    timeout_sec: Optional[float],
):
    """Call model_forward(features, length), raising InferenceTimeout after timeout_sec.

    The worker thread cannot be killed; on timeout it is abandoned and its
    result discarded.
    """
    if timeout_sec is None:
        return model_forward(features, length)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="offline-asr-inference")
    try:
        future = executor.submit(model_forward, features, length)
        try:
            return future.result(timeout=timeout_sec)
        except FutureTimeout:
            future.cancel()
            raise InferenceTimeout(f"inference did not finish within {timeout_sec:g}s") from None
    finally:
        executor.shutdown(wait=False)


class OfflineTranscriber:
    """Runs the full pipeline on one recording at a time.

    Interface:
      transcriber = OfflineTranscriber(
          model_forward=my_onnx_fn,
          vocab=Vocabulary.from_json("labels.json"),
      )
      result = transcriber.transcribe(audio, reference="expected text")

    Holds only read-only state (configs, window, filterbank), so one
    instance can serve concurrent calls on independent inputs.
    """

    def __init__(
        self,
        model_forward: ModelForward,
        vocab: Union[Vocabulary, Sequence[str]],
        feature_config: Optional[FeatureConfig] = None,
        normalization_config: Optional[NormalizationConfig] = None,
        config: Optional[PipelineConfig] = None,
        mel_extractor: Optional[MelFeatureExtractor] = None,
    ):
        self.config = config or PipelineConfig()
        self.feature_config = feature_config or FeatureConfig()
        self.normalization_config = normalization_config or NormalizationConfig()
        self.mel_extractor = mel_extractor or MelFeatureExtractor(self.feature_config)
        if not isinstance(vocab, Vocabulary):
            vocab = Vocabulary.from_list(
                vocab if vocab is not None else [],
                boundary_marker=self.config.boundary_marker,
            )
        self.decoder = CTCGreedyDecoder(vocab, blank_index=self.config.blank_index)
        self.model_forward = model_forward

    def featurize(self, audio: np.ndarray, rng: Optional[np.random.Generator] = None) -> LogMelFeatures:
        """Normalize amplitude and extract model-ready features."""
        prepared = prepare_audio(audio, self.normalization_config)
        return self.mel_extractor.extract(prepared, rng)

    def _model_inputs(self, features: LogMelFeatures):
        length = features.valid_length if self.config.pad_length_as_valid else features.n_frames
        return features.as_model_input(), np.array([length], dtype=np.int64)

    def transcribe(
        self,
        audio: np.ndarray,
        reference: Optional[str] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> TranscriptionResult:
        """Transcribe one complete utterance.

        Args:
            audio: Mono float samples at feature_config.sample_rate.
            reference: Optional expected transcript; when non-blank, WER is computed.
            rng: Entropy source for dither (only used when dither is enabled).

        Returns:
            TranscriptionResult with text, diagnostics and stage timings.
        """
        t_start = time.perf_counter()
        audio = as_mono_buffer(audio)
        if audio.size == 0:
            raise InvalidInput("audio is empty")
        stats = signal_stats(audio, self.normalization_config.activity_threshold)

        features = self.featurize(audio, rng)
        t_features = time.perf_counter()

        model_features, length = self._model_inputs(features)
        logits = run_with_timeout(
            self.model_forward,
            model_features,
            length,
            self.config.inference_timeout_sec,
        )
        t_inference = time.perf_counter()

        raw_text = self.decoder.decode(logits)
        text = post_process(raw_text)
        t_decode = time.perf_counter()

        wer = None
        if reference is not None and reference.strip():
            wer = compute_wer(reference, "" if is_silence(text) else text)

        timings_ms = {
            "preprocess": (t_features - t_start) * 1000,
            "inference": (t_inference - t_features) * 1000,
            "decode": (t_decode - t_inference) * 1000,
            "total": (time.perf_counter() - t_start) * 1000,
        }
        logger.info(
            "Transcribed %.2fs of audio in %.0f ms (preprocess %.0f, inference %.0f, decode %.0f)",
            audio.size / self.feature_config.sample_rate,
            timings_ms["total"],
            timings_ms["preprocess"],
            timings_ms["inference"],
            timings_ms["decode"],
        )
        return TranscriptionResult(
            text=text,
            raw_text=raw_text,
            n_frames=features.n_frames,
            padded_frames=features.padded_frames,
            duration_sec=audio.size / self.feature_config.sample_rate,
            stats=stats,
            wer=wer,
            timings_ms=timings_ms,
        )
