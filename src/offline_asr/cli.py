"""CLI for feature extraction, logits decoding and WER scoring."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from offline_asr.audio import FeatureConfig, MelFeatureExtractor, NormalizationConfig, prepare_audio
from offline_asr.decoder import CTCGreedyDecoder, Vocabulary
from offline_asr.errors import InvalidInput, OfflineAsrError
from offline_asr.metrics import compute_wer
from offline_asr.postprocess import post_process


def load_wav(path: Path, sample_rate: int) -> np.ndarray:
    """Read a WAV file as mono float32 in [-1, 1]."""
    import scipy.io.wavfile as wavfile

    try:
        sr, audio = wavfile.read(str(path))
    except (OSError, ValueError) as e:
        raise InvalidInput(f"could not read {path}: {e}") from e
    if sr != sample_rate:
        raise InvalidInput(f"expected {sample_rate} Hz, got {sr} Hz. Resample the file.")
    if audio.dtype == np.uint8:
        audio = (audio.astype(np.float32) - 128) / 128
    elif audio.dtype == np.int16:
        audio = audio.astype(np.float32) / 32768
    elif audio.dtype == np.int32:
        audio = audio.astype(np.float32) / 2147483648
    if audio.ndim > 1:
        audio = audio.mean(axis=1)
    return audio.astype(np.float32)


def _cmd_features(args: argparse.Namespace) -> None:
    config = FeatureConfig(dither=args.dither)
    audio = load_wav(args.wav, config.sample_rate)
    audio = prepare_audio(audio, NormalizationConfig(amplify=args.amplify))
    rng = np.random.default_rng(args.seed)
    features = MelFeatureExtractor(config).extract(audio, rng)
    print(
        f"Extracted {features.n_frames} frames (padded to {features.padded_frames}) "
        f"x {features.n_mels} Mel bins"
    )
    if args.output is not None:
        np.save(args.output, features.as_model_input())
        print(f"Saved: {args.output}")


def _cmd_decode(args: argparse.Namespace) -> None:
    vocab = Vocabulary.from_json(args.vocab)
    logits = np.load(args.logits)
    decoder = CTCGreedyDecoder(vocab, blank_index=args.blank_index)
    print(post_process(decoder.decode(logits)))


def _cmd_wer(args: argparse.Namespace) -> None:
    wer = compute_wer(args.reference, args.hypothesis)
    print(f"WER: {wer * 100:.2f}%")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="offline-asr",
        description="Log-Mel features, greedy CTC decoding and WER for offline ASR",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("features", help="Extract log-Mel features from a 16 kHz WAV file")
    p.add_argument("wav", type=Path, help="Input WAV path")
    p.add_argument("--output", "-o", type=Path, default=None, help="Save [1, n_mels, T] tensor as .npy")
    p.add_argument("--dither", action="store_true", help="Add 1e-5 uniform dither before the STFT")
    p.add_argument("--seed", type=int, default=None, help="Dither seed")
    p.add_argument("--amplify", action="store_true", help="Amplify quiet recordings before normalizing")
    p.set_defaults(func=_cmd_features)

    p = sub.add_parser("decode", help="Greedy-decode a logits .npy file")
    p.add_argument("logits", type=Path, help="Logits (T, V) or (1, T, V) saved with numpy")
    p.add_argument("--vocab", type=Path, required=True, help="labels.json (JSON list of tokens)")
    p.add_argument(
        "--blank-index",
        type=int,
        default=None,
        help="CTC blank index (default: try 0 and last, keep the longer decode)",
    )
    p.set_defaults(func=_cmd_decode)

    p = sub.add_parser("wer", help="Word error rate of HYPOTHESIS against REFERENCE")
    p.add_argument("reference")
    p.add_argument("hypothesis")
    p.set_defaults(func=_cmd_wer)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        args.func(args)
    except (OfflineAsrError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
