from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import numpy as np


class PolicyKind(str, Enum):
    WHITELIST = "whitelist"
    CENSOR = "censor"
    MUTE_ALL = "mute_all"


class Status(str, Enum):
    OK = "ok"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ReplaceRule:
    kind: str
    range: str


@dataclass(frozen=True)
class FileConfig:
    path: str
    replace: tuple[ReplaceRule, ...] = ()
    transcript: str | None = None


@dataclass(frozen=True)
class DirectoryConfig:
    path: str
    file_prefix: str = ""
    file_suffix: str = ""
    file_extension: str | None = None
    files: tuple[FileConfig, ...] = ()


@dataclass(frozen=True)
class CensorConfig:
    """Root of a loaded configuration file."""
    dirs: tuple[DirectoryConfig, ...] = ()
    file_extension: str | None = None
    replacements: dict = field(default_factory=dict)
    default_replacement: dict | str | None = None
    source_path: Path | None = None


@dataclass(frozen=True)
class TimeRange:
    """Range in seconds; an end of None means end of file."""
    start_s: float
    end_s: float | None


@dataclass(frozen=True)
class SampleRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: SampleRange) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class CensorRange:
    range: SampleRange
    kind: str


@dataclass(frozen=True)
class Policy:
    kind: PolicyKind
    ranges: tuple[CensorRange, ...] = ()

    @classmethod
    def whitelist(cls) -> Policy:
        return cls(PolicyKind.WHITELIST)

    @classmethod
    def mute_all(cls) -> Policy:
        return cls(PolicyKind.MUTE_ALL)

    @classmethod
    def censor(cls, ranges) -> Policy:
        ordered = tuple(sorted(ranges, key=lambda r: r.range.start))
        return cls(PolicyKind.CENSOR, ordered)


@dataclass(frozen=True)
class ResolvedFile:
    """A discovered file paired with the configuration that governs it."""
    path: Path
    directory: DirectoryConfig
    file_config: FileConfig | None
    policy_kind: PolicyKind
    companion: bool = False

    @property
    def known(self) -> bool:
        return self.file_config is not None


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded audio as a (frames, channels) array in its native sample type."""
    samples: np.ndarray
    fs: int
    channels: int
    subtype: str | None = None
    format: str | None = None
    backend: str = "soundfile"
    warnings: list[str] = field(default_factory=list)

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.frames / float(self.fs) if self.fs > 0 else 0.0


@dataclass(frozen=True)
class ReplacementClip:
    kind: str
    samples: np.ndarray
    fs: int

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])


@dataclass(frozen=True)
class FileOutcome:
    source: Path
    dest: Path | None
    policy: PolicyKind | None
    status: Status
    error_kind: str | None = None
    error: str | None = None
    censored_ranges: int = 0
    duration_s: float | None = None
    companion: bool = False

    def as_dict(self) -> dict:
        return {
            "source": str(self.source),
            "dest": str(self.dest) if self.dest else None,
            "policy": self.policy.value if self.policy else None,
            "status": self.status.value,
            "error_kind": self.error_kind,
            "error": self.error,
            "censored_ranges": self.censored_ranges,
            "duration_s": self.duration_s,
            "companion": self.companion,
        }
