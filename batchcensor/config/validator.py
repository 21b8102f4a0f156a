"""Validate a configuration before any file is processed."""
from __future__ import annotations

from batchcensor.errors import ConfigError, DuplicateEntry, UnknownReplacementKind
from batchcensor.matching.naming import directory_extension, expand_enumeration
from batchcensor.matching.resolver import check_rule_overlaps, effective_rules
from batchcensor.ranges.parser import parse_time_range
from batchcensor.types import CensorConfig


class ConfigErrors(ConfigError):
    """Several configuration problems found in one pass."""

    def __init__(self, errors: list[ConfigError]):
        super().__init__("; ".join(str(e) for e in errors))
        self.errors = errors
        self.kind = errors[0].kind


def referenced_kinds(config: CensorConfig) -> set[str]:
    """Every replacement kind named by a configured file."""
    kinds: set[str] = set()
    for directory in config.dirs:
        for file_config in directory.files:
            try:
                kinds.update(rule.kind for rule in effective_rules(file_config))
            except ConfigError:
                continue
    return kinds


def collect_config_errors(config: CensorConfig, registry=None) -> list[ConfigError]:
    """Return every problem in the configuration, in configuration order."""
    errors: list[ConfigError] = []
    seen_dirs: set[str] = set()
    for i, directory in enumerate(config.dirs):
        where = f"dirs[{i}]"
        if directory.path in seen_dirs:
            errors.append(DuplicateEntry(f"{where}.path: duplicate directory {directory.path!r}"))
        seen_dirs.add(directory.path)
        try:
            directory_extension(directory, config)
        except ConfigError as exc:
            errors.append(exc)
        seen_files: set[str] = set()
        for j, file_config in enumerate(directory.files):
            file_where = f"{where}.files[{j}]"
            name = expand_enumeration(file_config.path, j)
            if name in seen_files:
                errors.append(DuplicateEntry(f"{file_where}.path: duplicate file {name!r}"))
            seen_files.add(name)
            try:
                rules = effective_rules(file_config)
                for rule in rules:
                    parse_time_range(rule.range)
                check_rule_overlaps(rules, where=f"{directory.path}/{name}")
            except ConfigError as exc:
                exc.args = (f"{file_where}: {exc}",)
                errors.append(exc)
    if registry is not None:
        for kind in registry.missing(referenced_kinds(config)):
            errors.append(UnknownReplacementKind(kind))
    return errors


def validate_config(config: CensorConfig, registry=None) -> None:
    """
    Raise if the configuration cannot be executed.

    A single problem is raised as itself; several are wrapped in
    ConfigErrors so that one run reports all of them.
    """
    errors = collect_config_errors(config, registry)
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise ConfigErrors(errors)
