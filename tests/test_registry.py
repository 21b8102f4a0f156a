from __future__ import annotations

import threading
import time
from pathlib import Path

import numpy as np
import pytest

from batchcensor.clips.registry import ClipRegistry, ClipSource, build_registry, parse_clip_source
from batchcensor.errors import DecodeFailure, InvalidReplacementClip, UnknownReplacementKind
from batchcensor.types import AudioBuffer, CensorConfig

from tests.conftest import tone_int16, write_wav


class CountingLoader:
    def __init__(self, frames: int = 100, delay: float = 0.0):
        self.frames = frames
        self.delay = delay
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, path: str) -> AudioBuffer:
        with self._lock:
            self.calls.append(path)
        if self.delay:
            time.sleep(self.delay)
        samples = np.full((self.frames, 1), 16384, dtype=np.int16)
        return AudioBuffer(samples=samples, fs=44100, channels=1)


def test_clip_decoded_once_and_shared():
    loader = CountingLoader()
    source = ClipSource(path=Path("beep.wav"))
    registry = ClipRegistry({"a": source, "b": source}, loader=loader)

    first = registry.load("a")
    second = registry.load("a")
    other = registry.load("b")

    assert loader.calls == ["beep.wav"]
    assert registry.decode_count == 1
    assert first.samples is second.samples is other.samples
    assert first.samples.dtype == np.float64
    assert first.samples[0, 0] == 0.5
    assert other.kind == "b"


def test_cached_clip_is_read_only():
    registry = ClipRegistry({"a": ClipSource(path=Path("a.wav"))}, loader=CountingLoader())
    clip = registry.load("a")
    with pytest.raises(ValueError):
        clip.samples[0, 0] = 0.0


def test_concurrent_first_use_decodes_once():
    loader = CountingLoader(delay=0.05)
    registry = ClipRegistry({"a": ClipSource(path=Path("a.wav"))}, loader=loader)
    results = []

    def worker():
        results.append(registry.load("a"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(loader.calls) == 1
    assert registry.decode_count == 1
    assert len({id(r.samples) for r in results}) == 1


def test_unknown_kind():
    registry = ClipRegistry({}, loader=CountingLoader())
    assert registry.resolve("nope") is None
    assert not registry.is_registered("nope")
    assert registry.missing(["b", "a", "b"]) == ["a", "b"]
    with pytest.raises(UnknownReplacementKind):
        registry.load("nope")


def test_fallback_generator_covers_every_kind():
    registry = ClipRegistry({}, fallback=ClipSource(generator="tone"))
    clip = registry.resolve("anything")
    assert clip is not None
    assert clip.fs == 48000
    assert clip.frames == 48000
    assert clip.channels == 1
    assert registry.missing(["anything"]) == []


def test_generator_parameters():
    source = parse_clip_source({"generator": "silence", "seconds": 0.5, "fs": 8000})
    registry = ClipRegistry({"s": source})
    clip = registry.load("s")
    assert clip.fs == 8000
    assert clip.frames == 4000
    assert not clip.samples.any()


def test_bad_generator_parameters():
    registry = ClipRegistry({"t": parse_clip_source({"generator": "tone", "amplitude": 2.0})})
    with pytest.raises(InvalidReplacementClip):
        registry.load("t")
    registry = ClipRegistry({"t": parse_clip_source({"generator": "tone", "color": "pink"})})
    with pytest.raises(InvalidReplacementClip):
        registry.load("t")


@pytest.mark.parametrize(
    "spec",
    [
        42,
        {},
        {"path": ""},
        {"generator": "noise"},
        {"generator": "tone", "frequency_hz": [1000]},
        {"generator": "tone", "amplitude": {"db": -3}},
    ],
)
def test_parse_clip_source_rejects(spec):
    with pytest.raises(InvalidReplacementClip):
        parse_clip_source(spec)


def test_empty_clip_rejected():
    registry = ClipRegistry({"a": ClipSource(path=Path("a.wav"))}, loader=CountingLoader(frames=0))
    with pytest.raises(InvalidReplacementClip):
        registry.load("a")


def test_undecodable_clip_rejected():
    def broken(path):
        raise DecodeFailure(f"{path}: not audio")

    registry = ClipRegistry({"a": ClipSource(path=Path("a.wav"))}, loader=broken)
    with pytest.raises(InvalidReplacementClip):
        registry.load("a")


def test_build_registry_resolves_paths_against_config(tmp_path):
    write_wav(tmp_path / "clips" / "fuck.wav", tone_int16(0.2))
    config = CensorConfig(
        replacements={"fuck": "clips/fuck.wav"},
        source_path=tmp_path / "censor.yml",
    )
    registry = build_registry(config)
    assert registry.source_for("fuck").path == tmp_path / "clips" / "fuck.wav"
    clip = registry.load("fuck")
    assert clip.fs == 44100
    assert clip.frames == 8820
    assert registry.resolve("other") is None


def test_build_registry_fallback_names():
    assert build_registry(fallback="silence").source_for("x").generator == "silence"
    config = CensorConfig(default_replacement={"generator": "tone", "frequency_hz": 440})
    source = build_registry(config).source_for("x")
    assert source.generator == "tone"
    assert dict(source.params) == {"frequency_hz": 440}


def test_preload():
    loader = CountingLoader()
    registry = ClipRegistry(
        {"a": ClipSource(path=Path("a.wav")), "b": ClipSource(path=Path("b.wav"))},
        loader=loader,
    )
    registry.preload(["b", "a", "a"])
    assert sorted(loader.calls) == ["a.wav", "b.wav"]
    with pytest.raises(UnknownReplacementKind):
        registry.preload(["c"])


def test_decoded_clips_keep_their_rate():
    loader = CountingLoader()
    registry = ClipRegistry({"a": ClipSource(path=Path("a.wav"))}, loader=loader)
    assert registry.load("a", fs=8000).fs == 44100
    assert registry.load("a", fs=22050).fs == 44100
    assert loader.calls == ["a.wav"]
