"""
Batch Censor - configuration driven censoring of audio file trees

Every audio file in a configured directory is passed through unchanged,
censored over configured time ranges, or muted when no entry names it.
"""
from batchcensor.version import __version__
from batchcensor.types import (
    PolicyKind,
    Status,
    ReplaceRule,
    FileConfig,
    DirectoryConfig,
    CensorConfig,
    SampleRange,
    Policy,
    ResolvedFile,
    ReplacementClip,
    FileOutcome,
)

__all__ = [
    "__version__",
    "PolicyKind",
    "Status",
    "ReplaceRule",
    "FileConfig",
    "DirectoryConfig",
    "CensorConfig",
    "SampleRange",
    "Policy",
    "ResolvedFile",
    "ReplacementClip",
    "FileOutcome",
]
