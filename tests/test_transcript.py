from __future__ import annotations

import pytest

from batchcensor.config.transcript import MISSING_MARKER, parse_transcript
from batchcensor.errors import InvalidTranscript
from batchcensor.types import ReplaceRule


def test_parse_transcript_markers():
    transcript = parse_transcript("foo [bar]{01.123-$} [baz]{^-$}")
    assert transcript.replace == (
        ReplaceRule(kind="bar", range="01.123-$"),
        ReplaceRule(kind="baz", range="^-$"),
    )
    assert transcript.missing == ()


def test_marker_without_range_is_missing():
    transcript = parse_transcript("what the [heck] is [this]{00.5-00.7}")
    assert transcript.missing == ("heck",)
    assert [r.kind for r in transcript.replace] == ["this"]
    assert parse_transcript(MISSING_MARKER).missing == ("missing",)


def test_plain_text_has_no_rules():
    transcript = parse_transcript("nothing to see here")
    assert transcript.replace == ()
    assert transcript.missing == ()


@pytest.mark.parametrize("text", ["oops [word", "oops [word]{00.1-00.2", "[]{0-1}"])
def test_malformed_transcript(text):
    with pytest.raises(InvalidTranscript):
        parse_transcript(text)
