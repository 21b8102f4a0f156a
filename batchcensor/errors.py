"""Error taxonomy shared by planning and per-file processing."""
from __future__ import annotations


class CensorError(Exception):
    """Base class for all batchcensor errors."""
    kind = "censor_error"


class ConfigError(CensorError, ValueError):
    """The plan itself is invalid; nothing may be processed."""
    kind = "config_error"


class InvalidRangeFormat(ConfigError):
    kind = "invalid_range_format"


class InvalidRangeOrder(ConfigError):
    kind = "invalid_range_order"


class InvalidRangeValue(ConfigError):
    kind = "invalid_range_value"


class OverlappingRanges(ConfigError):
    kind = "overlapping_ranges"


class UnknownReplacementKind(ConfigError):
    kind = "unknown_replacement_kind"

    def __init__(self, replacement_kind: str):
        super().__init__(f"No replacement registered for kind: {replacement_kind!r}")
        self.replacement_kind = replacement_kind


class InvalidReplacementClip(ConfigError):
    kind = "invalid_replacement_clip"


class InvalidTranscript(ConfigError):
    kind = "invalid_transcript"


class DuplicateEntry(ConfigError):
    kind = "duplicate_entry"


class MissingDirectory(ConfigError):
    kind = "missing_directory"


class MissingFileExtension(ConfigError):
    kind = "missing_file_extension"


class FileError(CensorError):
    """Failure isolated to a single file."""
    kind = "file_error"


class DecodeFailure(FileError):
    kind = "decode_failure"


class EncodeFailure(FileError):
    kind = "encode_failure"


class IoFailure(FileError):
    kind = "io_failure"


def error_kind(exc: BaseException) -> str:
    """Stable identifier for an exception in outcome records."""
    if isinstance(exc, CensorError):
        return exc.kind
    if isinstance(exc, OSError):
        return IoFailure.kind
    return "internal_error"
