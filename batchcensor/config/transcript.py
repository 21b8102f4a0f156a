"""Transcript markers: `[kind]{range}` replacements embedded in text."""
from __future__ import annotations

from dataclasses import dataclass

from batchcensor.errors import InvalidTranscript
from batchcensor.types import ReplaceRule

MISSING_MARKER = "[missing]"


@dataclass(frozen=True)
class Transcript:
    text: str
    replace: tuple[ReplaceRule, ...] = ()
    missing: tuple[str, ...] = ()


def _read_until(text: str, pos: int, close: str) -> tuple[str, int]:
    end = text.find(close, pos)
    if end < 0:
        raise InvalidTranscript(f"Unterminated {close!r} in transcript: {text!r}")
    return text[pos:end], end + 1


def parse_transcript(text: str) -> Transcript:
    """
    Parse replacement markers out of a transcript.

    `[word]{00.100-00.400}` yields a rule of kind `word`. A marker without a
    following `{range}` is recorded as missing: the word is known to need
    censoring but its position has not been transcribed yet.
    """
    if not isinstance(text, str):
        raise InvalidTranscript("Transcript must be a string.")
    replace: list[ReplaceRule] = []
    missing: list[str] = []
    pos = 0
    while True:
        start = text.find("[", pos)
        if start < 0:
            break
        kind, pos = _read_until(text, start + 1, "]")
        if not kind.strip():
            raise InvalidTranscript(f"Empty marker in transcript: {text!r}")
        if pos < len(text) and text[pos] == "{":
            range_text, pos = _read_until(text, pos + 1, "}")
            replace.append(ReplaceRule(kind=kind, range=range_text))
        else:
            missing.append(kind)
    return Transcript(text=text, replace=tuple(replace), missing=tuple(missing))
