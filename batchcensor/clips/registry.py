"""Registry of replacement clips, loaded once per source and shared read-only."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

import numpy as np

from batchcensor.dsp.generators import GENERATORS, GENERATOR_FS
from batchcensor.dsp.transform import from_sample_type
from batchcensor.errors import CensorError, InvalidReplacementClip, UnknownReplacementKind
from batchcensor.io.audio import load_audio
from batchcensor.types import AudioBuffer, CensorConfig, ReplacementClip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClipSource:
    """Where a clip comes from: a file on disk or a named generator."""
    path: Path | None = None
    generator: str | None = None
    params: tuple[tuple[str, Any], ...] = field(default=())

    @property
    def label(self) -> str:
        if self.path is not None:
            return str(self.path)
        return f"generator:{self.generator}"


def parse_clip_source(spec: Any, *, base_dir: Path | None = None, where: str = "replacement") -> ClipSource:
    """
    Interpret a replacement source from configuration.

    A string is a clip path (relative to `base_dir`); a mapping holds either
    `path` or `generator` plus generator parameters.
    """
    if isinstance(spec, str):
        spec = {"path": spec}
    if not isinstance(spec, dict):
        raise InvalidReplacementClip(f"{where} must be a path or an object.")
    if "generator" in spec:
        name = str(spec["generator"])
        if name not in GENERATORS:
            raise InvalidReplacementClip(
                f"{where}: unknown generator {name!r} (expected one of {sorted(GENERATORS)})"
            )
        params = tuple(sorted((str(k), v) for k, v in spec.items() if k != "generator"))
        for key, value in params:
            if not isinstance(value, (str, int, float, bool)):
                raise InvalidReplacementClip(
                    f"{where}: generator parameter {key!r} must be a number or a string."
                )
        return ClipSource(generator=name, params=params)
    path_value = spec.get("path")
    if not isinstance(path_value, str) or not path_value:
        raise InvalidReplacementClip(f"{where} needs a 'path' or a 'generator'.")
    path = Path(path_value)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return ClipSource(path=path)


def _decode_clip(
    source: ClipSource,
    loader: Callable[[str], AudioBuffer],
    rate: int | None = None
) -> tuple[np.ndarray, int]:
    if source.generator is not None:
        params = dict(source.params)
        fs = int(params.pop("fs", GENERATOR_FS))
        if rate is not None:
            fs = int(rate)
        try:
            return GENERATORS[source.generator](fs, **params), fs
        except (TypeError, ValueError) as exc:
            raise InvalidReplacementClip(f"{source.label}: {exc}") from exc
    try:
        audio = loader(str(source.path))
    except CensorError as exc:
        raise InvalidReplacementClip(f"Could not load clip {source.label}: {exc}") from exc
    return from_sample_type(audio.samples), int(audio.fs)


class ClipRegistry:
    """
    Maps replacement kinds to clips.

    Each source is decoded at most once, even when several threads ask for
    it at the same time; afterwards lookups only read the cache. Generator
    sources are synthesized once per requested sample rate so they never
    need resampling.
    """

    def __init__(
        self,
        sources: dict[str, ClipSource] | None = None,
        *,
        fallback: ClipSource | None = None,
        loader: Callable[[str], AudioBuffer] = load_audio
    ):
        self._sources = dict(sources or {})
        self._fallback = fallback
        self._loader = loader
        self._cache: dict[tuple[ClipSource, int | None], tuple[np.ndarray, int]] = {}
        self._locks: dict[tuple[ClipSource, int | None], threading.Lock] = {}
        self._guard = threading.Lock()
        self.decode_count = 0

    def register(self, kind: str, source: ClipSource) -> None:
        self._sources[kind] = source

    def source_for(self, kind: str) -> ClipSource | None:
        return self._sources.get(kind, self._fallback)

    def is_registered(self, kind: str) -> bool:
        return self.source_for(kind) is not None

    def _lock_for(self, key: tuple[ClipSource, int | None]) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def _decoded(self, source: ClipSource, rate: int | None = None) -> tuple[np.ndarray, int]:
        key = (source, int(rate) if source.generator is not None and rate else None)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        with self._lock_for(key):
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            samples, fs = _decode_clip(source, self._loader, key[1])
            if samples.ndim != 2 or samples.shape[0] == 0:
                raise InvalidReplacementClip(f"Replacement clip {source.label} is empty.")
            samples.setflags(write=False)
            self.decode_count += 1
            logger.debug("decoded replacement clip %s (%d frames @ %d Hz)", source.label, samples.shape[0], fs)
            self._cache[key] = (samples, fs)
            return samples, fs

    def load(self, kind: str, fs: int | None = None) -> ReplacementClip:
        """
        Return the clip for a kind, raising UnknownReplacementKind if none is registered.

        `fs` is the rate of the file being censored; generators honour it,
        decoded clips keep their own rate.
        """
        source = self.source_for(kind)
        if source is None:
            raise UnknownReplacementKind(kind)
        samples, clip_fs = self._decoded(source, fs)
        return ReplacementClip(kind=kind, samples=samples, fs=clip_fs)

    def resolve(self, kind: str, fs: int | None = None) -> ReplacementClip | None:
        """Non-failing lookup for unregistered kinds."""
        if not self.is_registered(kind):
            return None
        return self.load(kind, fs)

    def missing(self, kinds: Iterable[str]) -> list[str]:
        return sorted({k for k in kinds if not self.is_registered(k)})

    def preload(self, kinds: Iterable[str]) -> None:
        """Decode every clip the given kinds need; fails on the first problem."""
        for kind in sorted(set(kinds)):
            self.load(kind)


def build_registry(
    config: CensorConfig | None = None,
    *,
    fallback: str | dict | None = None,
    loader: Callable[[str], AudioBuffer] = load_audio
) -> ClipRegistry:
    """Build a registry from a configuration's `replacements` table."""
    base_dir = config.source_path.parent if config and config.source_path else None
    sources: dict[str, ClipSource] = {}
    if config is not None:
        for kind, spec in config.replacements.items():
            sources[str(kind)] = parse_clip_source(
                spec, base_dir=base_dir, where=f"replacements[{kind!r}]"
            )
    fallback_spec = fallback if fallback is not None else (config.default_replacement if config else None)
    fallback_source = None
    if fallback_spec is not None:
        if isinstance(fallback_spec, str) and fallback_spec in GENERATORS:
            fallback_spec = {"generator": fallback_spec}
        fallback_source = parse_clip_source(
            fallback_spec, base_dir=base_dir, where="default_replacement"
        )
    return ClipRegistry(sources, fallback=fallback_source, loader=loader)
