from __future__ import annotations

import math

import numpy as np
import pytest

from batchcensor.clips.registry import ClipRegistry, ClipSource
from batchcensor.dsp.generators import silence, tone
from batchcensor.dsp.transform import transform
from batchcensor.types import CensorRange, Policy, SampleRange

FS = 44100


def _max_step(amplitude: float, frequency_hz: float, fs: int) -> float:
    return 2.0 * amplitude * math.sin(math.pi * frequency_hz / fs)


def test_default_tone():
    x = tone()
    assert x.shape == (48000, 1)
    assert np.max(np.abs(x)) == pytest.approx(0.3, abs=1e-3)


@pytest.mark.parametrize("frequency_hz", [1000.0, 440.5, 997.3])
def test_tone_loops_without_a_click(frequency_hz):
    x = tone(FS, frequency_hz=frequency_hz)[:, 0]
    looped = np.concatenate([x, x])
    seam = abs(looped[x.size] - looped[x.size - 1])
    assert seam <= 1.1 * _max_step(0.3, frequency_hz, FS)


def test_tone_rejects_bad_parameters():
    with pytest.raises(ValueError):
        tone(FS, amplitude=1.5)
    with pytest.raises(ValueError):
        tone(FS, frequency_hz=0.0)
    with pytest.raises(ValueError):
        tone(FS, frequency_hz=30000.0)


def test_silence():
    assert silence(8000, seconds=0.25).shape == (2000, 1)


def test_long_region_filled_with_continuous_tone():
    source = ClipSource(generator="tone", params=(("frequency_hz", 440.5),))
    registry = ClipRegistry({}, fallback=source)
    policy = Policy.censor([CensorRange(SampleRange(0, 3 * FS), "beep")])
    out = transform(np.zeros((3 * FS, 1)), policy, registry, fs=FS)

    steps = np.abs(np.diff(out[:, 0]))
    assert np.max(steps) <= 1.1 * _max_step(0.3, 440.5, FS)


def test_generators_follow_the_file_rate():
    registry = ClipRegistry({}, fallback=ClipSource(generator="tone"))
    at_file_rate = registry.load("beep", fs=FS)
    assert at_file_rate.fs == FS
    assert at_file_rate.frames == FS
    assert registry.load("beep", fs=FS).samples is at_file_rate.samples
    assert registry.load("beep").fs == 48000
    assert registry.decode_count == 2
