"""Typed errors for feature extraction, inference and decoding.

Every error carries a short kind and the proximate cause, so the message
shown to a user reads e.g. ``InvalidInput: audio is empty``.
"""

from __future__ import annotations


class OfflineAsrError(Exception):
    """Base class for all errors raised by offline_asr."""

    kind = "Error"

    def __init__(self, cause: str):
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.kind}: {self.cause}"


class InvalidInput(OfflineAsrError, ValueError):
    """Empty or malformed audio, or audio shorter than one analysis window."""

    kind = "InvalidInput"


class InferenceTimeout(OfflineAsrError, TimeoutError):
    """External inference exceeded the configured bound."""

    kind = "TimeoutError"


class DecodeFormatError(OfflineAsrError, ValueError):
    """Logits are not a T x V or 1 x T x V matrix."""

    kind = "DecodeFormatError"


class VocabularyUnavailable(OfflineAsrError, LookupError):
    """Vocabulary is empty or could not be loaded."""

    kind = "VocabularyUnavailable"
