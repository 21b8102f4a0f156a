"""File-name helpers: enumeration placeholders and prefix/suffix/extension affixes."""
from __future__ import annotations

from batchcensor.errors import MissingFileExtension
from batchcensor.types import CensorConfig, DirectoryConfig


def uppercase_radix(index: int) -> str:
    """Render an index in base 26 using A-Z, at least two letters wide."""
    letters = []
    while index > 0:
        letters.append(chr(ord("A") + index % 26))
        index //= 26
    letters.extend("A" * max(0, 2 - len(letters)))
    return "".join(reversed(letters))


def expand_enumeration(path: str, index: int) -> str:
    """
    Replace the first enumeration placeholder in a path.

    `$@` becomes `uppercase_radix(index)`; a run of `$` becomes `index + 1`
    zero padded to the length of the run.
    """
    pos = path.find("$")
    if pos < 0:
        return path
    head, rest = path[:pos], path[pos:]
    if rest.startswith("$@"):
        return head + uppercase_radix(index) + rest[2:]
    width = len(rest) - len(rest.lstrip("$"))
    return head + f"{index + 1:0{width}d}" + rest[width:]


def directory_extension(directory: DirectoryConfig, config: CensorConfig | None = None) -> str:
    """Extension that audio files in a directory carry, inherited from the root."""
    ext = directory.file_extension
    if ext is None and config is not None:
        ext = config.file_extension
    if not ext:
        raise MissingFileExtension(
            f"dirs[{directory.path}]: file_extension must be set on the directory or configuration root."
        )
    return ext


def split_extension(name: str) -> tuple[str, str]:
    """Split `stem.ext`; names without a dot have an empty extension."""
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return name, ""
    return stem, ext


def strip_affixes(name: str, directory: DirectoryConfig, extension: str) -> str | None:
    """
    Reduce an on-disk file name to its configured base name.

    Returns None when the name does not carry the directory's extension,
    prefix and suffix.
    """
    stem, ext = split_extension(name)
    if ext != extension:
        return None
    if directory.file_prefix:
        if not stem.startswith(directory.file_prefix):
            return None
        stem = stem[len(directory.file_prefix):]
    if directory.file_suffix:
        if not stem.endswith(directory.file_suffix):
            return None
        stem = stem[:len(stem) - len(directory.file_suffix)]
    return stem


def expected_file_name(base: str, directory: DirectoryConfig, extension: str) -> str:
    """Inverse of strip_affixes."""
    return f"{directory.file_prefix}{base}{directory.file_suffix}.{extension}"
