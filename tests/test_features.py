"""Unit tests and toy example for log-Mel feature extraction."""

from __future__ import annotations

import unittest

import numpy as np

from offline_asr.audio import FeatureConfig, MelFeatureExtractor, normalize_peak
from offline_asr.audio.features import (
    compute_log_mel_spectrogram,
    frame_count,
    hann_window,
    hz_to_mel,
    mel_bin_points,
    mel_filterbank,
    mel_to_hz,
    padded_length,
)
from offline_asr.errors import InvalidInput

SR = 16_000


def _sine(freq: float = 440.0, seconds: float = 1.0, sr: int = SR) -> np.ndarray:
    t = np.arange(int(seconds * sr)) / sr
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class TestConfig(unittest.TestCase):
    """Tests for FeatureConfig geometry and validation."""

    def test_default_geometry(self) -> None:
        """25 ms / 10 ms at 16 kHz is 400 / 160 samples, 256 kept bins."""
        config = FeatureConfig()
        self.assertEqual(config.frame_length, 400)
        self.assertEqual(config.hop_length, 160)
        self.assertEqual(config.n_freq_bins, 256)
        self.assertEqual(config.mel_f_max, 8000.0)

    def test_window_longer_than_fft_rejected(self) -> None:
        """winLength must not exceed nFft."""
        with self.assertRaises(ValueError):
            FeatureConfig(window_ms=40.0, fft_size=512)

    def test_f_max_above_nyquist_rejected(self) -> None:
        with self.assertRaises(ValueError):
            FeatureConfig(f_max=9000.0)


class TestMelScale(unittest.TestCase):
    """Tests for Hz <-> Mel conversion and the filterbank."""

    def test_round_trip(self) -> None:
        """hz_to_mel(mel_to_hz(x)) == x and back, within 1e-6."""
        x = np.linspace(0.0, 8000.0, 41)
        np.testing.assert_allclose(hz_to_mel(mel_to_hz(x)), x, atol=1e-6)
        np.testing.assert_allclose(mel_to_hz(hz_to_mel(x)), x, atol=1e-6)

    def test_zero_hz_is_zero_mel(self) -> None:
        self.assertAlmostEqual(float(hz_to_mel(0.0)), 0.0)

    def test_filterbank_shape(self) -> None:
        fb = mel_filterbank(80, 512, 16000.0, 0.0, 8000.0)
        self.assertEqual(fb.shape, (80, 256))

    def test_triangles_peak_at_center_and_vanish_outside(self) -> None:
        """Weight is 1.0 at the center bin and 0.0 outside [left, right)."""
        fb = mel_filterbank(80, 512, 16000.0, 0.0, 8000.0)
        points = mel_bin_points(80, 512, 16000.0, 0.0, 8000.0)
        n_freqs = fb.shape[1]
        for m in range(80):
            left, center, right = points[m], points[m + 1], points[m + 2]
            if right > center and center < n_freqs:
                self.assertEqual(fb[m, center], 1.0, f"band {m}")
            self.assertTrue(np.all(fb[m, :left] == 0.0), f"band {m}")
            self.assertTrue(np.all(fb[m, right:] == 0.0), f"band {m}")

    def test_not_area_normalized(self) -> None:
        """Rows peak at exactly 1.0; wide high-frequency rows sum to more than narrow ones."""
        fb = mel_filterbank(80, 512, 16000.0, 0.0, 8000.0)
        self.assertEqual(fb.max(), 1.0)
        self.assertGreater(fb[-1].sum(), fb[10].sum())

    def test_zero_width_slope_does_not_divide_by_zero(self) -> None:
        """Many mels on a tiny FFT produce coincident bins; result stays finite."""
        fb = mel_filterbank(40, 64, 16000.0, 0.0, 8000.0)
        self.assertTrue(np.all(np.isfinite(fb)))
        self.assertTrue(np.all((fb >= 0.0) & (fb <= 1.0)))

    def test_filterbank_cached_read_only(self) -> None:
        """Same configuration shares one read-only matrix."""
        a = mel_filterbank(80, 512, 16000.0, 0.0, 8000.0)
        b = mel_filterbank(80, 512, 16000.0, 0.0, 8000.0)
        self.assertIs(a, b)
        self.assertFalse(a.flags.writeable)


class TestSTFT(unittest.TestCase):
    """Tests for Hann windowing and frame geometry."""

    def setUp(self) -> None:
        self.extractor = MelFeatureExtractor(FeatureConfig())

    def test_hann_formula(self) -> None:
        w = hann_window(400)
        i = np.arange(400)
        expected = 0.5 - 0.5 * np.cos(2 * np.pi * i / 399)
        np.testing.assert_allclose(w, expected, atol=1e-6)

    def test_frame_count(self) -> None:
        """frames == max(0, floor((N - win) / hop) + 1)."""
        for n in (0, 1, 399, 400, 401, 559, 560, 561, 16000, 16123):
            expected = max(0, (n - 400) // 160 + 1) if n >= 400 else 0
            self.assertEqual(frame_count(n, 400, 160), expected)
            spec = self.extractor.stft(np.zeros(n, dtype=np.float32))
            self.assertEqual(spec.shape, (expected, 256), f"N={n}")

    def test_magnitudes_non_negative(self) -> None:
        rng = np.random.default_rng(0)
        spec = self.extractor.stft(rng.uniform(-1, 1, 4000).astype(np.float32))
        self.assertTrue(np.all(spec >= 0.0))

    def test_single_frame_matches_direct_fft(self) -> None:
        """A frame is window * samples zero-padded to nFft, first nFft/2 bins."""
        rng = np.random.default_rng(1)
        audio = rng.uniform(-1, 1, 400).astype(np.float32)
        buf = np.zeros(512)
        buf[:400] = audio * hann_window(400)
        expected = np.abs(np.fft.rfft(buf))[:256]
        np.testing.assert_allclose(self.extractor.stft(audio)[0], expected, rtol=1e-4, atol=1e-4)

    def test_dither_copies_and_is_seedable(self) -> None:
        """Dither never touches the caller's buffer; a seeded rng is deterministic."""
        extractor = MelFeatureExtractor(FeatureConfig(dither=True))
        audio = np.zeros(1600, dtype=np.float32)
        a = extractor.stft(audio, rng=np.random.default_rng(7))
        b = extractor.stft(audio, rng=np.random.default_rng(7))
        self.assertTrue(np.all(audio == 0.0))
        np.testing.assert_array_equal(a, b)
        self.assertGreater(a.max(), 0.0)

    def test_no_dither_by_default(self) -> None:
        spec = self.extractor.stft(np.zeros(1600, dtype=np.float32), rng=np.random.default_rng(7))
        self.assertEqual(spec.max(), 0.0)


class TestLogMel(unittest.TestCase):
    """Tests for log-Mel normalization and padding."""

    def setUp(self) -> None:
        self.extractor = MelFeatureExtractor(FeatureConfig())

    def test_padded_length(self) -> None:
        self.assertEqual(padded_length(98, 16), 112)
        self.assertEqual(padded_length(96, 16), 96)
        self.assertEqual(padded_length(1, 16), 16)

    def test_band_statistics_and_zero_padding(self) -> None:
        """Real frames: mean ~0, variance ~1 per band; padded frames exactly 0.

        Zero-width bands (all-zero filter rows) are constant and normalize to 0.
        """
        rng = np.random.default_rng(0)
        audio = rng.uniform(-0.5, 0.5, SR).astype(np.float32)
        features = self.extractor.extract(audio)
        active = self.extractor.mel_filters.sum(axis=1) > 0
        real = features.data[:, : features.n_frames].astype(np.float64)
        np.testing.assert_allclose(real.mean(axis=1), 0.0, atol=1e-6)
        np.testing.assert_allclose(real[active].var(axis=1), 1.0, atol=1e-6)
        np.testing.assert_allclose(features.data[~active], 0.0, atol=1e-6)
        self.assertTrue(np.all(features.data[:, features.n_frames :] == 0.0))

    def test_default_config_has_zero_width_band(self) -> None:
        """Band 2 collapses to bins (1, 2, 2) at 80 mels / FFT 512 / 16 kHz."""
        points = mel_bin_points(80, 512, 16000.0, 0.0, 8000.0)
        self.assertEqual(list(points[2:5]), [1, 2, 2])
        self.assertEqual(self.extractor.mel_filters[2].sum(), 0.0)

    def test_layout_mel_major(self) -> None:
        """flat()[m * padded + t] == data[m, t]; model input is [1, nMels, padded]."""
        rng = np.random.default_rng(3)
        features = self.extractor.extract(rng.uniform(-1, 1, 8000).astype(np.float32))
        flat = features.flat()
        m, t = 5, 7
        self.assertEqual(flat[m * features.padded_frames + t], features.data[m, t])
        self.assertEqual(features.as_model_input().shape, (1, 80, features.padded_frames))
        self.assertEqual(features.valid_length, features.padded_frames)

    def test_silence_does_not_fail(self) -> None:
        """All-zero audio yields finite, (near) all-zero features."""
        features = self.extractor.extract(np.zeros(SR, dtype=np.float32))
        self.assertEqual(features.n_frames, 98)
        self.assertTrue(np.all(np.isfinite(features.data)))
        np.testing.assert_allclose(features.data, 0.0, atol=1e-6)

    def test_short_audio_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            self.extractor.extract(np.zeros(399, dtype=np.float32))

    def test_empty_audio_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            self.extractor.extract(np.zeros(0, dtype=np.float32))

    def test_raw_log_mel_floor(self) -> None:
        """ln(0 + eps) for silent frames."""
        raw = self.extractor.extract_raw(np.zeros(400, dtype=np.float32))
        np.testing.assert_allclose(raw, np.log(1e-10))


class TestSineEndToEnd(unittest.TestCase):
    """1 s, 16 kHz, 440 Hz tone through normalize -> STFT -> filterbank -> log-Mel."""

    def test_frames_and_padding(self) -> None:
        audio = normalize_peak(_sine())
        features = compute_log_mel_spectrogram(audio)
        self.assertEqual(features.n_frames, 98)
        self.assertEqual(features.padded_frames, 112)
        self.assertEqual(features.data.shape, (80, 112))

    def test_energy_near_440_hz(self) -> None:
        extractor = MelFeatureExtractor()
        raw = extractor.extract_raw(normalize_peak(_sine()))
        best = int(np.argmax(raw.mean(axis=0)))
        mel_points = np.linspace(hz_to_mel(0.0), hz_to_mel(8000.0), 82)
        centers_hz = mel_to_hz(mel_points)[1:-1]
        self.assertLess(abs(centers_hz[best] - 440.0), 150.0)


def run_toy_example() -> None:
    """Toy example: features of a 440 Hz tone."""
    print("=== Toy example: log-Mel features ===\n")
    extractor = MelFeatureExtractor()
    features = extractor.extract(normalize_peak(_sine()))
    print(f"Frames: {features.n_frames} (padded to {features.padded_frames}) x {features.n_mels} Mel bins")
    raw = extractor.extract_raw(normalize_peak(_sine()))
    print(f"Loudest Mel band: {int(np.argmax(raw.mean(axis=0)))}")
    print("\nDone.")


if __name__ == "__main__":
    run_toy_example()
    print("\n--- Running unit tests ---")
    unittest.main(argv=[""], exit=False, verbosity=2)
