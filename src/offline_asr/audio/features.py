"""Feature extraction: Hann-windowed STFT, 80-bin log-Mel, per-band normalization, padding.

Reproduces the NeMo Citrinet preprocessing contract:
  frames of 400 samples every 160, zero-padded to FFT 512, magnitude of the
  first 256 bins, unnormalized triangular Mel filters, ln(x + 1e-10),
  per-band mean/std over real frames, time axis zero-padded to a multiple of 16.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import fft as sp_fft
from scipy.signal import windows

from offline_asr.audio.config import FeatureConfig
from offline_asr.errors import InvalidInput

logger = logging.getLogger(__name__)

DITHER_AMPLITUDE = 1e-5
NORM_EPS = 1e-10


def hz_to_mel(hz):
    return 2595.0 * np.log10(1.0 + np.asarray(hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


def hann_window(win_length: int) -> np.ndarray:
    """Symmetric Hann window: w[i] = 0.5 - 0.5 cos(2 pi i / (win_length - 1))."""
    window = windows.hann(win_length, sym=True).astype(np.float32)
    window.setflags(write=False)
    return window


def mel_bin_points(
    n_mels: int,
    n_fft: int,
    sample_rate: float,
    fmin: float = 0.0,
    fmax: Optional[float] = None,
) -> np.ndarray:
    """FFT bin indices of the n_mels + 2 equally mel-spaced edge/center points."""
    if fmax is None:
        fmax = sample_rate / 2
    mel_points = np.linspace(hz_to_mel(fmin), hz_to_mel(fmax), n_mels + 2)
    hz_points = mel_to_hz(mel_points)
    return np.floor((n_fft + 1) * hz_points / sample_rate).astype(int)


@functools.lru_cache(maxsize=16)
def mel_filterbank(
    n_mels: int,
    n_fft: int,
    sample_rate: float,
    fmin: float = 0.0,
    fmax: Optional[float] = None,
) -> np.ndarray:
    """Build the (n_mels, n_fft // 2) triangular Mel filterbank.

    Filters peak at 1.0 on their center bin and are not area-normalized.
    A slope with zero width (center == left or right == center) is left at
    zero. The result is cached and read-only.
    """
    n_freqs = n_fft // 2
    bin_points = mel_bin_points(n_mels, n_fft, sample_rate, fmin, fmax)

    filters = np.zeros((n_mels, n_freqs), dtype=np.float64)
    for i in range(n_mels):
        left, center, right = bin_points[i], bin_points[i + 1], bin_points[i + 2]
        if center > left:
            rising = np.arange(left, min(center, n_freqs))
            filters[i, rising] = (rising - left) / (center - left)
        if right > center:
            falling = np.arange(center, min(right, n_freqs))
            filters[i, falling] = (right - falling) / (right - center)
    filters.setflags(write=False)
    return filters


def frame_count(n_samples: int, win_length: int, hop_length: int) -> int:
    """Number of full analysis frames; trailing partial frames are dropped."""
    if n_samples < win_length:
        return 0
    return (n_samples - win_length) // hop_length + 1


def padded_length(n_frames: int, pad_to: int) -> int:
    return -(-n_frames // pad_to) * pad_to


@dataclass(frozen=True)
class LogMelFeatures:
    """Normalized log-Mel tensor, mel-major: data[m, t], t < padded_frames.

    Columns t >= n_frames are exactly zero.
    """

    data: np.ndarray
    n_frames: int
    n_mels: int
    padded_frames: int

    @property
    def valid_length(self) -> int:
        """Length handed to the model with the features (the padded length)."""
        return self.padded_frames

    def as_model_input(self) -> np.ndarray:
        """View shaped [1, n_mels, padded_frames]."""
        return self.data[np.newaxis, :, :]

    def flat(self) -> np.ndarray:
        """Flat buffer, index = mel * padded_frames + t."""
        return self.data.reshape(-1)


class MelFeatureExtractor:
    """Extract normalized 80-bin log-Mel features from one complete utterance."""

    def __init__(self, config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()
        self._window = hann_window(self.config.frame_length)
        self._mel_filters = mel_filterbank(
            self.config.n_mels,
            self.config.fft_size,
            float(self.config.sample_rate),
            float(self.config.f_min),
            self.config.mel_f_max,
        )

    @property
    def mel_filters(self) -> np.ndarray:
        return self._mel_filters

    def dither(self, audio: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Return a copy of ``audio`` with uniform noise in [-1e-5, 1e-5] added."""
        rng = rng if rng is not None else np.random.default_rng()
        noise = rng.uniform(-DITHER_AMPLITUDE, DITHER_AMPLITUDE, size=audio.shape)
        return (audio + noise).astype(np.float32)

    def stft(self, audio: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Compute the STFT magnitude spectrum.

        STFT: 25 ms Hann window / 10 ms hop, FFT 512, no centering or end padding.

        Returns:
            (n_frames, fft_size // 2) magnitudes; n_frames may be 0.
        """
        audio = np.asarray(audio, dtype=np.float32)
        if audio.ndim != 1:
            raise InvalidInput(f"expected mono audio, got array of shape {audio.shape}")
        cfg = self.config
        if cfg.dither:
            audio = self.dither(audio, rng)

        n_frames = frame_count(len(audio), cfg.frame_length, cfg.hop_length)
        if n_frames == 0:
            return np.zeros((0, cfg.n_freq_bins), dtype=np.float32)

        frames = np.lib.stride_tricks.sliding_window_view(audio, cfg.frame_length)
        frames = frames[:: cfg.hop_length][:n_frames] * self._window
        spectrum = sp_fft.rfft(frames, n=cfg.fft_size, axis=1)
        return np.abs(spectrum[:, : cfg.n_freq_bins]).astype(np.float32)

    def magnitude_to_log_mel(self, magnitude: np.ndarray) -> np.ndarray:
        """Convert STFT magnitudes to raw log-Mel energies, (n_frames, n_mels)."""
        mel = np.dot(magnitude.astype(np.float64), self._mel_filters.T)
        return np.log(mel + self.config.log_eps)

    def extract_raw(self, audio: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Raw (unnormalized) log-Mel features, shape (n_frames, n_mels)."""
        return self.magnitude_to_log_mel(self.stft(audio, rng))

    def normalize(self, log_mel: np.ndarray) -> LogMelFeatures:
        """Per-band mean/variance normalization, transpose to mel-major, zero-pad time.

        Statistics come from the real frames only (biased variance).
        """
        spec_len = log_mel.shape[0]
        if spec_len == 0:
            raise InvalidInput(
                f"audio shorter than one analysis window ({self.config.frame_length} samples)"
            )
        n_mels = log_mel.shape[1]
        padded = padded_length(spec_len, self.config.pad_to)

        mean = log_mel.mean(axis=0)
        std = np.sqrt(log_mel.var(axis=0) + NORM_EPS)

        out = np.zeros((n_mels, padded), dtype=np.float32)
        out[:, :spec_len] = ((log_mel - mean) / std).T
        return LogMelFeatures(data=out, n_frames=spec_len, n_mels=n_mels, padded_frames=padded)

    def extract(self, audio: np.ndarray, rng: Optional[np.random.Generator] = None) -> LogMelFeatures:
        """Extract model-ready log-Mel features from raw audio."""
        audio = np.asarray(audio, dtype=np.float32)
        if audio.size == 0:
            raise InvalidInput("audio is empty")
        features = self.normalize(self.extract_raw(audio, rng))
        logger.debug(
            "Extracted %d frames (padded to %d) x %d Mel bins from %d samples",
            features.n_frames,
            features.padded_frames,
            features.n_mels,
            audio.size,
        )
        return features


def compute_log_mel_spectrogram(
    audio: np.ndarray,
    config: Optional[FeatureConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> LogMelFeatures:
    """One-shot extraction with a (cached) filterbank for ``config``."""
    return MelFeatureExtractor(config).extract(audio, rng)
