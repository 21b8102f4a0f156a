from __future__ import annotations

import json
import sys
from pathlib import Path

import numpy as np
import soundfile as sf
import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

FS = 44100


def tone_int16(
    seconds: float,
    *,
    fs: int = FS,
    freq_hz: float = 440.0,
    amp: float = 0.5,
    channels: int = 1
) -> np.ndarray:
    """Deterministic (frames, channels) int16 test signal."""
    n = int(round(seconds * fs))
    t = np.arange(n, dtype=np.float64) / fs
    x = amp * np.sin(2.0 * np.pi * freq_hz * t)
    cols = [np.round(x * (0.5 + 0.5 * ch) * 32767).astype(np.int16) for ch in range(channels)]
    return np.stack(cols, axis=1)


def write_wav(path: Path, samples: np.ndarray, fs: int = FS, subtype: str = "PCM_16") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), samples, fs, subtype=subtype)
    return path


def read_wav(path: Path) -> tuple[np.ndarray, int]:
    data, fs = sf.read(str(path), always_2d=True, dtype="int16")
    return data, fs


def build_ar2_config_dict(clip_path: str = "clips/fuck.wav") -> dict:
    return {
        "replacements": {"fuck": clip_path},
        "dirs": [
            {
                "path": "ar2",
                "file_prefix": "AR2_",
                "file_extension": "wav",
                "files": [
                    {"path": "AAAA_01"},
                    {
                        "path": "ABAA_01",
                        "replace": [{"kind": "fuck", "range": "00.876-01.199"}],
                    },
                ],
            }
        ],
    }


def build_ar2_tree(tmp_path: Path, *, config: dict | None = None, fmt: str = "yaml") -> Path:
    """Lay out the ar2 example tree and return the configuration path."""
    write_wav(tmp_path / "ar2" / "AR2_AAAA_01.wav", tone_int16(2.0, freq_hz=300.0))
    write_wav(tmp_path / "ar2" / "AR2_ABAA_01.wav", tone_int16(2.0, freq_hz=500.0))
    write_wav(tmp_path / "ar2" / "AR2_ZZZZ_99.wav", tone_int16(1.5, freq_hz=700.0))
    write_wav(tmp_path / "clips" / "fuck.wav", tone_int16(0.2, freq_hz=1000.0, amp=0.3))
    return write_config(tmp_path, config or build_ar2_config_dict(), fmt=fmt)


def write_config(tmp_path: Path, config: dict, fmt: str = "yaml") -> Path:
    if fmt == "json":
        path = tmp_path / "censor.json"
        path.write_text(json.dumps(config), encoding="utf-8")
    else:
        path = tmp_path / "censor.yml"
        path.write_text(yaml.safe_dump(config, sort_keys=False), encoding="utf-8")
    return path
