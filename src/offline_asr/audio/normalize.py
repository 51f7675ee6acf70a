"""Amplitude normalization and signal diagnostics.

Two policies:
- ``normalize_peak``: scale so that the peak equals ``target_peak`` (inference).
- ``amplify``: gain towards ``target_amp``, clamped to ``max_gain`` and clipped
  sample-wise to [-1, 1] (optional enhancement before inference).

Both return new buffers; the caller's samples are never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from offline_asr.audio.config import NormalizationConfig
from offline_asr.errors import InvalidInput

logger = logging.getLogger(__name__)

# Diagnostics thresholds for "this recording is probably silence"
MIN_ACTIVE_PERCENT = 1.0
MIN_PEAK = 0.01


@dataclass(frozen=True)
class SignalStats:
    """Amplitude statistics of one buffer."""

    n_samples: int
    n_active: int
    peak: float

    @property
    def percent_active(self) -> float:
        if self.n_samples == 0:
            return 0.0
        return 100.0 * self.n_active / self.n_samples

    @property
    def degenerate(self) -> bool:
        """True for silence or near-zero amplitude."""
        return self.percent_active < MIN_ACTIVE_PERCENT or self.peak < MIN_PEAK


def as_mono_buffer(samples: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
    """Return a float32 1-D copy of ``samples``.

    A (N, 1) column is squeezed and a (N, 2) stereo array is averaged to mono.
    Anything else, or non-finite samples, raises InvalidInput.
    """
    try:
        audio = np.array(samples, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"audio is not a numeric sample buffer ({e})") from e

    if audio.ndim == 2 and audio.shape[1] == 1:
        audio = audio[:, 0]
    elif audio.ndim == 2 and audio.shape[1] == 2:
        audio = audio.mean(axis=1, dtype=np.float32)
    if audio.ndim != 1:
        raise InvalidInput(f"expected mono audio, got array of shape {audio.shape}")
    if not np.all(np.isfinite(audio)):
        raise InvalidInput("audio contains NaN or infinite samples")
    return np.ascontiguousarray(audio)


def signal_stats(audio: np.ndarray, activity_threshold: float = 1e-3) -> SignalStats:
    """Count active samples and find the peak absolute amplitude."""
    if audio.size == 0:
        return SignalStats(n_samples=0, n_active=0, peak=0.0)
    magnitude = np.abs(audio)
    return SignalStats(
        n_samples=int(audio.size),
        n_active=int(np.count_nonzero(magnitude > activity_threshold)),
        peak=float(magnitude.max()),
    )


def _report(stats: SignalStats, stage: str) -> None:
    logger.debug(
        "%s: %d of %d samples active (%.1f%%), peak %.1f%%",
        stage,
        stats.n_active,
        stats.n_samples,
        stats.percent_active,
        stats.peak * 100,
    )
    if stats.degenerate:
        logger.warning(
            "%s: signal looks like silence (%.1f%% active, peak %.4f); continuing",
            stage,
            stats.percent_active,
            stats.peak,
        )


def normalize_peak(
    audio: np.ndarray,
    target_peak: float = 0.95,
    activity_threshold: float = 1e-3,
) -> np.ndarray:
    """Scale ``audio`` so that max |x| == target_peak; silence is returned as-is."""
    audio = as_mono_buffer(audio)
    stats = signal_stats(audio, activity_threshold)
    _report(stats, "normalize")
    if stats.peak > 0:
        audio *= np.float32(target_peak / stats.peak)
    return audio


def amplify(
    audio: np.ndarray,
    target_amp: float = 0.3,
    max_gain: float = 10.0,
    min_peak: float = 1e-3,
    activity_threshold: float = 1e-3,
) -> np.ndarray:
    """Raise quiet recordings towards ``target_amp`` with a bounded gain."""
    audio = as_mono_buffer(audio)
    stats = signal_stats(audio, activity_threshold)
    _report(stats, "amplify")
    if stats.peak < min_peak:
        logger.warning("amplify: peak %.5f below %.5f, not amplifying", stats.peak, min_peak)
        return audio

    gain = min(target_amp / stats.peak, max_gain)
    logger.debug(
        "amplify: %.1f%% -> %.1f%% (gain %.2fx)",
        stats.peak * 100,
        min(stats.peak * gain, 1.0) * 100,
        gain,
    )
    return np.clip(audio * np.float32(gain), -1.0, 1.0).astype(np.float32)


def prepare_audio(
    audio: np.ndarray,
    config: Optional[NormalizationConfig] = None,
) -> np.ndarray:
    """Apply the configured policies: optional amplification, then peak normalization."""
    config = config or NormalizationConfig()
    if config.amplify:
        audio = amplify(
            audio,
            target_amp=config.target_amp,
            max_gain=config.max_gain,
            min_peak=config.min_peak,
            activity_threshold=config.activity_threshold,
        )
    return normalize_peak(
        audio,
        target_peak=config.target_peak,
        activity_threshold=config.activity_threshold,
    )
