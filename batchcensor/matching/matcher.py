"""Reconcile configured directory/file entries against files found on disk."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping

from batchcensor.io.audio import is_audio_name
from batchcensor.matching.naming import directory_extension, expand_enumeration, strip_affixes
from batchcensor.matching.resolver import policy_kind
from batchcensor.types import CensorConfig, DirectoryConfig, FileConfig, PolicyKind, ResolvedFile


def index_files(directory: DirectoryConfig) -> dict[str, FileConfig]:
    """Map expanded base names to file entries, preserving configuration order."""
    return {
        expand_enumeration(f.path, i): f
        for i, f in enumerate(directory.files)
    }


def match_directory(
    directory: DirectoryConfig,
    names: Iterable[str],
    *,
    base_dir: Path,
    config: CensorConfig | None = None
) -> list[ResolvedFile]:
    """Match the file names found in one configured directory."""
    extension = directory_extension(directory, config)
    known = index_files(directory)
    dir_path = base_dir / directory.path
    resolved: list[ResolvedFile] = []
    for name in sorted(names):
        path = dir_path / name
        base = strip_affixes(name, directory, extension)
        if base is None and not name.endswith(f".{extension}") and not is_audio_name(name):
            resolved.append(ResolvedFile(
                path=path,
                directory=directory,
                file_config=None,
                policy_kind=PolicyKind.WHITELIST,
                companion=True,
            ))
            continue
        file_config = known.get(base) if base is not None else None
        resolved.append(ResolvedFile(
            path=path,
            directory=directory,
            file_config=file_config,
            policy_kind=policy_kind(file_config),
        ))
    return resolved


def match(
    directories: Iterable[DirectoryConfig],
    discovered: Mapping[str, Iterable[str]],
    *,
    base_dir: Path,
    config: CensorConfig | None = None
) -> list[ResolvedFile]:
    """
    Pair every discovered file in a configured directory with its entry.

    `discovered` maps a directory path, as written in the configuration, to
    the file names found in it. Directories that are not configured are
    ignored and configured files that are absent on disk produce nothing.
    """
    resolved: list[ResolvedFile] = []
    for directory in directories:
        names = discovered.get(directory.path, ())
        resolved.extend(match_directory(directory, names, base_dir=base_dir, config=config))
    return resolved
