"""Synthesized replacement clips."""
from __future__ import annotations

import numpy as np

DEFAULT_TONE_HZ = 1000.0
DEFAULT_TONE_AMPLITUDE = 0.3
GENERATOR_FS = 48000


def tone(
    fs: int = GENERATOR_FS,
    *,
    frequency_hz: float = DEFAULT_TONE_HZ,
    amplitude: float = DEFAULT_TONE_AMPLITUDE,
    seconds: float = 1.0
) -> np.ndarray:
    """
    Sine tone as a mono (frames, 1) float64 buffer.

    The clip holds a whole number of cycles, as close to `seconds` as
    possible, so that looping it keeps the phase continuous. The frequency
    is adjusted by less than half a sample per clip to make the cycles fit.
    """
    if fs <= 0:
        raise ValueError("Sample rate must be positive.")
    if not 0.0 < frequency_hz < fs / 2.0:
        raise ValueError("Tone frequency must be between 0 and the Nyquist frequency.")
    if not 0.0 <= amplitude <= 1.0:
        raise ValueError("Tone amplitude must be within 0..1.")
    cycles = max(1, int(round(seconds * frequency_hz)))
    n = max(1, int(round(cycles * fs / frequency_hz)))
    t = np.arange(n, dtype=np.float64) / n
    return (amplitude * np.sin(2.0 * np.pi * cycles * t)).reshape(-1, 1)


def silence(fs: int = GENERATOR_FS, *, seconds: float = 1.0) -> np.ndarray:
    """All-zero mono (frames, 1) float64 buffer."""
    n = max(1, int(round(seconds * fs)))
    return np.zeros((n, 1), dtype=np.float64)


GENERATORS = {
    "tone": tone,
    "silence": silence,
}
