"""Amplitude normalization and log-Mel feature extraction."""

from offline_asr.audio.config import FeatureConfig, NormalizationConfig, PipelineConfig
from offline_asr.audio.features import (
    LogMelFeatures,
    MelFeatureExtractor,
    compute_log_mel_spectrogram,
    hz_to_mel,
    mel_filterbank,
    mel_to_hz,
)
from offline_asr.audio.normalize import (
    SignalStats,
    amplify,
    as_mono_buffer,
    normalize_peak,
    prepare_audio,
    signal_stats,
)

__all__ = [
    "FeatureConfig",
    "NormalizationConfig",
    "PipelineConfig",
    "LogMelFeatures",
    "MelFeatureExtractor",
    "compute_log_mel_spectrogram",
    "hz_to_mel",
    "mel_filterbank",
    "mel_to_hz",
    "SignalStats",
    "amplify",
    "as_mono_buffer",
    "normalize_peak",
    "prepare_audio",
    "signal_stats",
]
