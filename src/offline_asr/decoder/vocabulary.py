"""Index-addressed token vocabulary (labels.json)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Union

from offline_asr.errors import VocabularyUnavailable

# SentencePiece word-boundary marker
BOUNDARY_MARKER = "▁"


class Vocabulary:
    """Ordered token list; index i maps to tokens[i].

    Interface:
      vocab = Vocabulary.from_json("labels.json")
      vocab.token_text(i)  # boundary marker rendered as a space
    """

    def __init__(self, tokens: Iterable[str], boundary_marker: str = BOUNDARY_MARKER):
        self.tokens: List[str] = [str(t) for t in tokens]
        if not self.tokens:
            raise VocabularyUnavailable("vocabulary is empty")
        self.boundary_marker = boundary_marker

    @classmethod
    def from_list(cls, tokens: Iterable[str], boundary_marker: str = BOUNDARY_MARKER) -> "Vocabulary":
        return cls(tokens, boundary_marker)

    @classmethod
    def from_json(cls, path: Union[str, Path], boundary_marker: str = BOUNDARY_MARKER) -> "Vocabulary":
        """Load a JSON list of token strings."""
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise VocabularyUnavailable(f"could not load {path}: {e}") from e
        if not isinstance(data, list):
            raise VocabularyUnavailable(f"{path} does not contain a JSON list of tokens")
        return cls(data, boundary_marker)

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> str:
        return self.tokens[index]

    def token_text(self, index: int) -> str:
        """Token at ``index`` with the boundary marker replaced by a space."""
        return self.tokens[index].replace(self.boundary_marker, " ")
