"""Centralized audio, feature extraction and pipeline configuration.

Encoding standards (NeMo Citrinet-compatible front end):
- Audio: mono 16 kHz float samples in [-1, 1]
- STFT: 25 ms Hann window / 10 ms hop, FFT 512, magnitude (not power)
- Features: 80-bin log-Mel filterbanks, unnormalized triangular filters
- Normalization: per-band mean/variance over real frames, time axis padded to 16
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FeatureConfig:
    """Feature extraction configuration."""

    # Recording
    sample_rate: int = 16_000

    # STFT
    window_ms: float = 25.0
    hop_ms: float = 10.0
    fft_size: int = 512

    # Mel filterbanks
    n_mels: int = 80
    f_min: float = 0.0
    f_max: Optional[float] = None  # None = Nyquist

    # Log-mel / padding
    log_eps: float = 1e-10
    pad_to: int = 16

    # Add uniform noise in [-1e-5, 1e-5] before windowing
    dither: bool = False

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if self.n_mels < 1:
            raise ValueError("n_mels must be >= 1")
        if self.pad_to < 1:
            raise ValueError("pad_to must be >= 1")
        if self.frame_length < 1 or self.hop_length < 1:
            raise ValueError("window_ms and hop_ms must cover at least one sample")
        if self.frame_length > self.fft_size:
            raise ValueError(
                f"window length ({self.frame_length}) must be <= fft_size ({self.fft_size})"
            )
        if not 0.0 <= self.f_min < self.mel_f_max <= self.nyquist:
            raise ValueError("expected 0 <= f_min < f_max <= sample_rate / 2")

    @property
    def frame_length(self) -> int:
        """STFT window length in samples."""
        return int(self.sample_rate * self.window_ms / 1000)

    @property
    def hop_length(self) -> int:
        """STFT hop length in samples."""
        return int(self.sample_rate * self.hop_ms / 1000)

    @property
    def n_freq_bins(self) -> int:
        """Magnitude bins kept per frame (the Nyquist bin is dropped)."""
        return self.fft_size // 2

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2

    @property
    def mel_f_max(self) -> float:
        """Upper filterbank edge in Hz."""
        return self.nyquist if self.f_max is None else float(self.f_max)


@dataclass(frozen=True)
class NormalizationConfig:
    """Amplitude normalization before feature extraction."""

    # Inference normalization: scale so that max |x| == target_peak
    target_peak: float = 0.95

    # Optional pre-inference amplification (gain clamped, samples clipped)
    amplify: bool = False
    target_amp: float = 0.3
    max_gain: float = 10.0
    min_peak: float = 1e-3

    # Samples with |x| above this count as active in diagnostics
    activity_threshold: float = 1e-3


@dataclass(frozen=True)
class PipelineConfig:
    """Inference and decoding parameters for the offline transcriber."""

    inference_timeout_sec: float = 60.0

    # None = try blank 0 and blank len(vocab) - 1, keep the longer decode
    blank_index: Optional[int] = None
    boundary_marker: str = "▁"

    # Feed padded_frames (not n_frames) as the model's valid length
    pad_length_as_valid: bool = True
