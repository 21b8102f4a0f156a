"""Time range parsing and conversion to sample indices."""
from __future__ import annotations

import math
import re

from batchcensor.errors import InvalidRangeFormat, InvalidRangeOrder, InvalidRangeValue
from batchcensor.types import SampleRange, TimeRange

START_OF_FILE = "^"
END_OF_FILE = "$"

_RANGE_RE = re.compile(r"^\s*(?P<start>-?[^-\s]+)\s*-\s*(?P<end>-?[^-\s]+)\s*$")
_CLOCK_RE = re.compile(
    r"^(?:(?:(?P<hours>\d+):)?(?P<minutes>\d+):)?(?P<seconds>\d+(?:\.\d*)?|\.\d+)$"
)
_SPECIAL_FLOATS = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan", "+nan", "-nan"}


def _parse_seconds(token: str, text: str) -> float:
    """Parse a single endpoint in seconds or `[[hh:]mm:]ss[.fff]` notation."""
    lowered = token.lower()
    if lowered in _SPECIAL_FLOATS:
        raise InvalidRangeValue(f"Range endpoint must be finite: {text!r}")
    negative = token.startswith("-")
    body = token[1:] if negative else token
    m = _CLOCK_RE.match(body)
    if not m:
        raise InvalidRangeFormat(f"Bad range endpoint {token!r} in {text!r}")
    seconds = float(m.group("seconds"))
    seconds += 60.0 * int(m.group("minutes") or 0)
    seconds += 3600.0 * int(m.group("hours") or 0)
    if negative and seconds > 0:
        raise InvalidRangeValue(f"Range endpoint must not be negative: {text!r}")
    if not math.isfinite(seconds):
        raise InvalidRangeValue(f"Range endpoint must be finite: {text!r}")
    return seconds


def parse_time_range(text: str) -> TimeRange:
    """
    Parse a `<start>-<end>` range string into seconds.

    `^` as start means the beginning of the file and `$` as end means the
    end of the file.
    """
    if not isinstance(text, str):
        raise InvalidRangeFormat(f"Range must be a string, got {type(text).__name__}")
    m = _RANGE_RE.match(text)
    if not m:
        raise InvalidRangeFormat(f"Range must look like <start>-<end>: {text!r}")
    start_tok = m.group("start")
    end_tok = m.group("end")
    if start_tok == END_OF_FILE or end_tok == START_OF_FILE:
        raise InvalidRangeFormat(f"Misplaced range anchor in {text!r}")
    start = 0.0 if start_tok == START_OF_FILE else _parse_seconds(start_tok, text)
    end = None if end_tok == END_OF_FILE else _parse_seconds(end_tok, text)
    if end is not None and end <= start:
        raise InvalidRangeOrder(f"Range end must be after start: {text!r}")
    return TimeRange(start_s=start, end_s=end)


def to_samples(seconds: float, sample_rate: float) -> int:
    """Convert seconds to the nearest sample index."""
    return int(round(seconds * sample_rate))


def to_sample_range(
    time_range: TimeRange,
    sample_rate: float,
    total_samples: int | None = None,
    *,
    text: str = ""
) -> SampleRange:
    """Convert a time range to a half-open sample range, clamped to the file."""
    if sample_rate <= 0:
        raise ValueError("Sample rate must be positive.")
    label = text or f"{time_range.start_s}-{time_range.end_s}"
    start = to_samples(time_range.start_s, sample_rate)
    if time_range.end_s is None:
        if total_samples is None:
            raise InvalidRangeValue(f"Open-ended range needs the file length: {label!r}")
        end = total_samples
    else:
        end = to_samples(time_range.end_s, sample_rate)
    if total_samples is not None:
        start = min(start, total_samples)
        end = min(end, total_samples)
    if end <= start:
        raise InvalidRangeValue(f"Range {label!r} is empty at {sample_rate:g} Hz")
    return SampleRange(start=start, end=end)


def parse(text: str, sample_rate: float, total_samples: int | None = None) -> SampleRange:
    """Parse a range string straight to sample indices."""
    return to_sample_range(parse_time_range(text), sample_rate, total_samples, text=text)


def time_ranges_overlap(a: TimeRange, b: TimeRange) -> bool:
    """Half-open overlap test where an open end extends to infinity."""
    a_end = math.inf if a.end_s is None else a.end_s
    b_end = math.inf if b.end_s is None else b.end_s
    return a.start_s < b_end and b.start_s < a_end
