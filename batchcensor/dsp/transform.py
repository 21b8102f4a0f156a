"""Apply censoring policies to decoded sample buffers."""
from __future__ import annotations

import numpy as np

from batchcensor.errors import InvalidRangeValue, UnknownReplacementKind
from batchcensor.types import Policy, PolicyKind, ReplacementClip


def resample_linear(samples: np.ndarray, fs: float, target_fs: float) -> np.ndarray:
    """Simple linear resampling for mono buffers."""
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return x
    if fs <= 0 or target_fs <= 0:
        raise ValueError("Sample rates must be positive.")
    if fs == target_fs:
        return x
    n_out = max(1, int(round(x.size * target_fs / fs)))
    t_in = np.arange(x.size, dtype=np.float64) / fs
    t_out = np.arange(n_out, dtype=np.float64) / target_fs
    return np.interp(t_out, t_in, x).astype(np.float64)


def to_sample_type(x: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Convert float samples in [-1, 1] to the target sample type."""
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        scaled = np.round(x * float(-int(info.min)))
        return np.clip(scaled, info.min, info.max).astype(dtype)
    return x.astype(dtype)


def from_sample_type(x: np.ndarray) -> np.ndarray:
    """Convert decoded samples to float64 in [-1, 1]."""
    x = np.asarray(x)
    if np.issubdtype(x.dtype, np.integer):
        return x.astype(np.float64) / float(-int(np.iinfo(x.dtype).min))
    return x.astype(np.float64)


def fit_clip(
    clip: ReplacementClip,
    length: int,
    *,
    fs: float,
    channels: int,
    dtype: np.dtype
) -> np.ndarray:
    """
    Shape a clip to exactly fill `length` frames of the target buffer.

    The clip is resampled to `fs`, looped from its start when shorter than
    the region and truncated when longer. A clip whose channel layout differs
    from the target contributes its first channel to every channel.
    """
    data = np.asarray(clip.samples, dtype=np.float64)
    if clip.fs != fs:
        data = np.stack(
            [resample_linear(data[:, ch], clip.fs, fs) for ch in range(data.shape[1])],
            axis=1,
        )
    if data.shape[1] != channels:
        data = np.repeat(data[:, :1], channels, axis=1)
    if data.shape[0] == 0:
        raise ValueError(f"Replacement clip {clip.kind!r} is empty.")
    idx = np.arange(length) % data.shape[0]
    return to_sample_type(data[idx], dtype)


def mute(samples: np.ndarray) -> np.ndarray:
    return np.zeros_like(samples)


def censor(samples: np.ndarray, policy: Policy, registry, *, fs: float) -> np.ndarray:
    """Overwrite every censor range with its replacement clip."""
    out = np.array(samples, copy=True)
    frames = out.shape[0]
    channels = out.shape[1]
    for censor_range in policy.ranges:
        r = censor_range.range
        if r.start < 0 or r.end > frames or r.start >= r.end:
            raise InvalidRangeValue(
                f"Samples {r.start}-{r.end} fall outside the buffer of {frames} frames."
            )
        clip = registry.resolve(censor_range.kind, fs=fs) if registry is not None else None
        if clip is None:
            raise UnknownReplacementKind(censor_range.kind)
        out[r.start:r.end] = fit_clip(
            clip, r.length, fs=fs, channels=channels, dtype=out.dtype
        )
    return out


def transform(samples: np.ndarray, policy: Policy, registry=None, *, fs: float) -> np.ndarray:
    """
    Produce the censored version of a (frames, channels) buffer.

    The result always has the input's shape and sample type and never
    aliases the input array.
    """
    x = np.asarray(samples)
    flat = x.ndim == 1
    if flat:
        x = x.reshape(-1, 1)
    if policy.kind is PolicyKind.WHITELIST:
        out = x.copy()
    elif policy.kind is PolicyKind.MUTE_ALL:
        out = mute(x)
    else:
        out = censor(x, policy, registry, fs=fs)
    return out[:, 0] if flat else out
