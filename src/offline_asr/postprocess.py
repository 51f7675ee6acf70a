"""Post-processing for decoder output: spacing, sentence case, final punctuation."""

import re

# Returned instead of an empty transcript
SILENCE = "(silence)"

_WHITESPACE = re.compile(r"\s+")
_AFTER_PERIOD = re.compile(r"(?<=\. )(\S)")


def post_process(raw: str) -> str:
    """Turn raw decoder text into a readable sentence.

    - Trim and collapse whitespace runs to single spaces
    - Capitalize the first character and the character after every ". "
    - Append "." unless the text already ends in ".", "!" or "?"

    Empty input (after trimming) yields SILENCE.
    """
    text = _WHITESPACE.sub(" ", raw.strip())
    if not text:
        return SILENCE
    text = text[0].upper() + text[1:]
    text = _AFTER_PERIOD.sub(lambda m: m.group(1).upper(), text)
    if not text.endswith((".", "!", "?")):
        text += "."
    return text


def is_silence(text: str) -> bool:
    return text == SILENCE
