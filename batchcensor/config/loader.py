"""Load censor configurations from JSON or YAML files."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from batchcensor.errors import ConfigError
from batchcensor.types import CensorConfig, DirectoryConfig, FileConfig, ReplaceRule

logger = logging.getLogger(__name__)

CONFIG_SUFFIXES = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def detect_format(path: str | Path) -> str:
    """Return "json" or "yaml" based on the file extension."""
    suffix = Path(path).suffix.lower()
    fmt = CONFIG_SUFFIXES.get(suffix)
    if fmt is None:
        raise ConfigError(f"Unsupported config format: {suffix or '(none)'}")
    return fmt


def _optional_str(value: Any, where: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{where} must be a string.")
    return value


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{where} must be a non-empty string.")
    return value


def _parse_rules(values: Any, where: str) -> tuple[ReplaceRule, ...]:
    if values is None:
        return ()
    if not isinstance(values, list):
        raise ConfigError(f"{where} must be a list.")
    rules = []
    for i, rule in enumerate(values):
        if not isinstance(rule, dict):
            raise ConfigError(f"{where}[{i}] must be an object.")
        kind = _require_str(rule.get("kind"), f"{where}[{i}].kind")
        rng = _require_str(rule.get("range"), f"{where}[{i}].range")
        rules.append(ReplaceRule(kind=kind, range=rng))
    return tuple(rules)


def _parse_file(obj: Any, where: str) -> FileConfig:
    if not isinstance(obj, dict):
        raise ConfigError(f"{where} must be an object.")
    return FileConfig(
        path=_require_str(obj.get("path"), f"{where}.path"),
        replace=_parse_rules(obj.get("replace"), f"{where}.replace"),
        transcript=_optional_str(obj.get("transcript"), f"{where}.transcript"),
    )


def _parse_transcript_map(obj: dict, where: str) -> list[FileConfig]:
    files = []
    for path, transcript in obj.items():
        _require_str(path, f"{where} key")
        files.append(FileConfig(
            path=path,
            transcript=_optional_str(transcript, f"{where}[{path!r}]"),
        ))
    return files


def _parse_files(values: Any, where: str) -> tuple[FileConfig, ...]:
    """Accept a list of file objects, a {path: transcript} map, or a list of such maps."""
    if values is None:
        return ()
    if isinstance(values, dict):
        return tuple(_parse_transcript_map(values, where))
    if not isinstance(values, list):
        raise ConfigError(f"{where} must be a list or a mapping.")
    files: list[FileConfig] = []
    for i, obj in enumerate(values):
        entry_where = f"{where}[{i}]"
        if isinstance(obj, dict) and "path" not in obj:
            files.extend(_parse_transcript_map(obj, entry_where))
        else:
            files.append(_parse_file(obj, entry_where))
    return tuple(files)


def _normalize_extension(value: str | None) -> str | None:
    if value is None:
        return None
    return value[1:] if value.startswith(".") else value


def parse_config(data: Any, *, source_path: Path | None = None) -> CensorConfig:
    """Build a CensorConfig from already deserialized data."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be an object.")
    dirs_raw = data.get("dirs", [])
    if not isinstance(dirs_raw, list):
        raise ConfigError("dirs must be a list.")
    dirs = []
    for i, d in enumerate(dirs_raw):
        where = f"dirs[{i}]"
        if not isinstance(d, dict):
            raise ConfigError(f"{where} must be an object.")
        dirs.append(DirectoryConfig(
            path=_require_str(d.get("path"), f"{where}.path"),
            file_prefix=_optional_str(d.get("file_prefix"), f"{where}.file_prefix") or "",
            file_suffix=_optional_str(d.get("file_suffix"), f"{where}.file_suffix") or "",
            file_extension=_normalize_extension(
                _optional_str(d.get("file_extension"), f"{where}.file_extension")
            ),
            files=_parse_files(d.get("files"), f"{where}.files"),
        ))
    replacements = data.get("replacements", {}) or {}
    if not isinstance(replacements, dict):
        raise ConfigError("replacements must be a mapping of kind to source.")
    return CensorConfig(
        dirs=tuple(dirs),
        file_extension=_normalize_extension(
            _optional_str(data.get("file_extension"), "file_extension")
        ),
        replacements=dict(replacements),
        default_replacement=data.get("default_replacement"),
        source_path=source_path,
    )


def load_config(path: str | Path) -> CensorConfig:
    """
    Load a configuration file.

    Args:
        path: Path to a .json, .yaml or .yml configuration

    Returns:
        Parsed CensorConfig with source_path set

    Raises:
        ConfigError: If the file is unreadable or structurally invalid
    """
    config_path = Path(path).resolve()
    fmt = detect_format(config_path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f) if fmt == "json" else yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Could not open configuration {config_path}: {exc}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse {config_path}: {exc}") from exc
    logger.debug("loaded %s configuration from %s", fmt, config_path)
    return parse_config(data, source_path=config_path)


def iter_config_files(folder: str | Path) -> list[Path]:
    """Collect configuration files below a folder, sorted by path."""
    root = Path(folder)
    if not root.is_dir():
        raise ConfigError(f"Configuration directory not found: {root}")
    return sorted(
        p for p in root.rglob("*")
        if p.is_file() and p.suffix.lower() in CONFIG_SUFFIXES
    )


def _rule_to_dict(rule: ReplaceRule) -> dict:
    return {"kind": rule.kind, "range": rule.range}


def _file_to_dict(f: FileConfig) -> dict:
    out: dict[str, Any] = {"path": f.path}
    if f.transcript is not None:
        out["transcript"] = f.transcript
    if f.replace:
        out["replace"] = [_rule_to_dict(r) for r in f.replace]
    return out


def config_to_dict(config: CensorConfig) -> dict:
    """Serialize a configuration back to plain data, omitting defaults."""
    out: dict[str, Any] = {}
    if config.file_extension is not None:
        out["file_extension"] = config.file_extension
    if config.replacements:
        out["replacements"] = dict(config.replacements)
    if config.default_replacement is not None:
        out["default_replacement"] = config.default_replacement
    dirs = []
    for d in config.dirs:
        entry: dict[str, Any] = {"path": d.path}
        if d.file_prefix:
            entry["file_prefix"] = d.file_prefix
        if d.file_suffix:
            entry["file_suffix"] = d.file_suffix
        if d.file_extension is not None:
            entry["file_extension"] = d.file_extension
        if d.files:
            entry["files"] = [_file_to_dict(f) for f in d.files]
        dirs.append(entry)
    if dirs:
        out["dirs"] = dirs
    return out


def dump_config_yaml(config: CensorConfig) -> str:
    return yaml.safe_dump(config_to_dict(config), sort_keys=False, allow_unicode=True)
