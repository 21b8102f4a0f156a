"""Audio I/O module."""
from __future__ import annotations
import json
import os
import shutil
import subprocess
import tempfile
import warnings as py_warnings
from pathlib import Path
import numpy as np
from batchcensor.errors import DecodeFailure, EncodeFailure, IoFailure
from batchcensor.types import AudioBuffer

# Integer subtypes are read in a type wide enough to round-trip exactly.
_SUBTYPE_DTYPES = {
    "PCM_S8": "int16",
    "PCM_U8": "int16",
    "PCM_16": "int16",
    "PCM_24": "int32",
    "PCM_32": "int32",
    "FLOAT": "float32",
    "DOUBLE": "float64",
}


def _read_dtype(subtype: str | None) -> str:
    return _SUBTYPE_DTYPES.get(subtype or "", "float64")


def _decode_soundfile(path: str) -> tuple[np.ndarray, int, str, str, list[str]]:
    """Decode using soundfile (libsndfile), keeping the native sample type."""
    try:
        import soundfile as sf
    except Exception as exc:
        raise RuntimeError("soundfile backend not available.") from exc

    info = sf.info(path)
    with py_warnings.catch_warnings(record=True) as w:
        py_warnings.simplefilter("always")
        data, fs = sf.read(path, always_2d=True, dtype=_read_dtype(info.subtype))
    warn_list = [str(wi.message) for wi in w]
    return data, int(fs), info.subtype, info.format, warn_list


def _ffprobe_info(path: str) -> tuple[int, int]:
    """Return (sample_rate, channels) from ffprobe."""
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        raise RuntimeError("ffprobe not found for ffmpeg backend.")
    cmd = [
        ffprobe,
        "-v", "error",
        "-select_streams", "a:0",
        "-show_entries", "stream=sample_rate,channels",
        "-of", "json",
        path,
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        raise ValueError(f"ffprobe failed: {proc.stderr.strip()}")
    info = json.loads(proc.stdout)
    streams = info.get("streams", [])
    if not streams:
        raise ValueError("ffprobe reported no audio streams.")
    stream = streams[0]
    return int(stream["sample_rate"]), int(stream["channels"])


def _decode_ffmpeg(path: str) -> tuple[np.ndarray, int, list[str]]:
    """Decode using ffmpeg to raw float32 PCM."""
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise RuntimeError("ffmpeg backend not available.")
    fs, ch = _ffprobe_info(path)
    cmd = [
        ffmpeg,
        "-v", "warning",
        "-i", path,
        "-f", "f32le",
        "-acodec", "pcm_f32le",
        "-vn",
        "pipe:1",
    ]
    proc = subprocess.run(cmd, capture_output=True, check=False)
    warn_list = [line for line in proc.stderr.decode("utf-8", errors="replace").splitlines() if line.strip()]
    if proc.returncode != 0:
        raise ValueError("ffmpeg decode failed.")
    data = np.frombuffer(proc.stdout, dtype=np.float32)
    if ch > 0:
        n = (data.size // ch) * ch
        if n != data.size:
            warn_list.append("ffmpeg: trimmed partial frame at end of stream.")
            data = data[:n]
        data = data.reshape(-1, ch)
    return data.copy(), fs, warn_list


def load_audio(path: str | Path) -> AudioBuffer:
    """
    Load an audio file as a (frames, channels) array.

    WAV, FLAC, AIFF and OGG decode through soundfile in their native sample
    type; anything soundfile cannot open falls back to ffmpeg when installed.
    """
    path = str(path)
    warnings_list: list[str] = []
    backend = "soundfile"
    subtype: str | None = None
    fmt: str | None = None
    try:
        data, fs, subtype, fmt, warn_list = _decode_soundfile(path)
        warnings_list.extend(warn_list)
    except Exception as exc:
        warnings_list.append(f"soundfile decode failed: {exc}")
        backend = "ffmpeg"
        try:
            data, fs, warn_list = _decode_ffmpeg(path)
        except Exception as ff_exc:
            raise DecodeFailure(f"{path}: {exc}; ffmpeg: {ff_exc}") from ff_exc
        warnings_list.extend(warn_list)

    if data.ndim != 2:
        raise DecodeFailure(f"{path}: decoded audio must be 2D.")
    return AudioBuffer(
        samples=data,
        fs=int(fs),
        channels=int(data.shape[1]),
        subtype=subtype,
        format=fmt,
        backend=backend,
        warnings=warnings_list,
    )


def _staging_path(dest: Path) -> Path:
    """Reserve a temporary file next to dest with the same extension."""
    fd, tmp = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.stem}-", suffix=dest.suffix)
    os.close(fd)
    return Path(tmp)


def _publish(tmp: Path, dest: Path) -> None:
    try:
        os.replace(tmp, dest)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise IoFailure(f"Could not move output into place at {dest}: {exc}") from exc


def _encode_soundfile(tmp: Path, audio: AudioBuffer, samples: np.ndarray) -> None:
    import soundfile as sf
    sf.write(str(tmp), samples, audio.fs, subtype=audio.subtype, format=audio.format)


def _encode_ffmpeg(tmp: Path, audio: AudioBuffer, samples: np.ndarray) -> None:
    """Encode float PCM through ffmpeg, which picks the codec from the extension."""
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise RuntimeError("ffmpeg backend not available.")
    pcm = np.ascontiguousarray(samples, dtype=np.float32)
    cmd = [
        ffmpeg,
        "-v", "error",
        "-y",
        "-f", "f32le",
        "-ar", str(audio.fs),
        "-ac", str(audio.channels),
        "-i", "pipe:0",
        str(tmp),
    ]
    proc = subprocess.run(cmd, input=pcm.tobytes(), capture_output=True, check=False)
    if proc.returncode != 0:
        raise ValueError(f"ffmpeg encode failed: {proc.stderr.decode('utf-8', errors='replace').strip()}")


def write_audio(dest: str | Path, audio: AudioBuffer, samples: np.ndarray | None = None) -> Path:
    """
    Encode samples with the parameters of `audio` and publish them atomically.

    The data is staged in a temporary file in the destination directory and
    renamed over `dest` only once encoding succeeded.
    """
    dest = Path(dest)
    data = audio.samples if samples is None else samples
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = _staging_path(dest)
    except OSError as exc:
        raise IoFailure(f"Could not prepare output {dest}: {exc}") from exc
    try:
        if audio.backend == "ffmpeg":
            _encode_ffmpeg(tmp, audio, data)
        else:
            _encode_soundfile(tmp, audio, data)
    except Exception as exc:
        tmp.unlink(missing_ok=True)
        raise EncodeFailure(f"{dest}: {exc}") from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _publish(tmp, dest)
    return dest


def copy_file(src: str | Path, dest: str | Path) -> Path:
    """Copy a file verbatim, publishing it atomically."""
    dest = Path(dest)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = _staging_path(dest)
        try:
            shutil.copyfile(src, tmp)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise IoFailure(f"Could not copy {src} to {dest}: {exc}") from exc
    _publish(tmp, dest)
    return dest


def list_files(folder: str | Path) -> list[str]:
    """Names of regular files directly inside a folder, sorted."""
    folder = Path(folder)
    try:
        return sorted(p.name for p in folder.iterdir() if p.is_file())
    except OSError as exc:
        raise IoFailure(f"Could not list {folder}: {exc}") from exc


# Extensions that decode as audio but are not libsndfile format names.
_EXTRA_AUDIO_EXTENSIONS = {"aif", "aifc", "oga", "opus", "mp3", "m4a", "aac", "wma"}
_audio_extensions: frozenset[str] | None = None


def audio_extensions() -> frozenset[str]:
    """Lower-cased extensions load_audio treats as audio."""
    global _audio_extensions
    if _audio_extensions is None:
        import soundfile as sf
        formats = {name.lower() for name in sf.available_formats()}
        _audio_extensions = frozenset(formats | _EXTRA_AUDIO_EXTENSIONS)
    return _audio_extensions


def is_audio_name(name: str) -> bool:
    suffix = Path(name).suffix
    return bool(suffix) and suffix[1:].lower() in audio_extensions()
