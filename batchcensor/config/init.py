"""Complete a configuration with the files it does not mention yet."""
from __future__ import annotations

import dataclasses
from pathlib import Path

from batchcensor.config.transcript import MISSING_MARKER
from batchcensor.matching.naming import directory_extension, strip_affixes
from batchcensor.types import CensorConfig, DirectoryConfig, FileConfig, ResolvedFile


def complete_config(
    config: CensorConfig,
    unknown: list[ResolvedFile]
) -> tuple[CensorConfig, list[Path]]:
    """
    Add a `[missing]` transcript entry for every unknown file.

    Files that do not carry their directory's prefix, suffix or extension
    cannot be named by an entry; they are returned instead of added.
    Directories come back sorted by path.
    """
    added: dict[str, list[FileConfig]] = {}
    rejected: list[Path] = []
    for resolved in unknown:
        directory = resolved.directory
        base = strip_affixes(resolved.path.name, directory, directory_extension(directory, config))
        if base is None:
            rejected.append(resolved.path)
            continue
        added.setdefault(directory.path, []).append(
            FileConfig(path=base, transcript=MISSING_MARKER)
        )
    dirs: list[DirectoryConfig] = []
    for directory in config.dirs:
        extra = added.get(directory.path)
        if extra:
            directory = dataclasses.replace(directory, files=directory.files + tuple(extra))
        dirs.append(directory)
    dirs.sort(key=lambda d: d.path)
    return dataclasses.replace(config, dirs=tuple(dirs)), rejected
