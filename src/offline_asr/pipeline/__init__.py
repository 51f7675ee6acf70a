"""End-to-end offline transcription pipeline."""

from offline_asr.pipeline.transcriber import (
    OfflineTranscriber,
    TranscriptionResult,
    run_with_timeout,
)

__all__ = ["OfflineTranscriber", "TranscriptionResult", "run_with_timeout"]
