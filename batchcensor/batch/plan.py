"""Turn a configuration and a directory tree into a list of per-file tasks."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from batchcensor.errors import MissingDirectory
from batchcensor.io.audio import list_files
from batchcensor.matching.matcher import match
from batchcensor.matching.resolver import effective_rules
from batchcensor.types import CensorConfig, PolicyKind, ResolvedFile

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "output"


@dataclass(frozen=True)
class Task:
    """One file to publish: where it comes from, where it goes, and why."""
    resolved: ResolvedFile
    dest: Path

    @property
    def source(self) -> Path:
        return self.resolved.path

    def describe(self) -> str:
        if self.resolved.companion:
            action = "copy"
        else:
            action = self.resolved.policy_kind.value
        return f"{action} {self.source} -> {self.dest}"


@dataclass(frozen=True)
class Plan:
    config: CensorConfig
    base_dir: Path
    output_dir: Path
    tasks: tuple[Task, ...]

    def by_policy(self, kind: PolicyKind) -> list[Task]:
        return [t for t in self.tasks if not t.resolved.companion and t.resolved.policy_kind is kind]

    @property
    def unknown(self) -> list[Task]:
        """Audio files muted because no entry matches them."""
        return [t for t in self.by_policy(PolicyKind.MUTE_ALL) if not t.resolved.known]

    @property
    def silenced(self) -> list[Task]:
        """Known files muted because their transcript still has unplaced markers."""
        return [t for t in self.by_policy(PolicyKind.MUTE_ALL) if t.resolved.known]

    def censor_kinds(self) -> set[str]:
        kinds: set[str] = set()
        for task in self.by_policy(PolicyKind.CENSOR):
            kinds.update(rule.kind for rule in effective_rules(task.resolved.file_config))
        return kinds

    def kind_counts(self) -> dict[str, int]:
        """How often each replacement kind is used, case-folded."""
        counts: Counter[str] = Counter()
        for task in self.by_policy(PolicyKind.CENSOR):
            for rule in effective_rules(task.resolved.file_config):
                counts[rule.kind.lower()] += 1
        return dict(sorted(counts.items()))


def default_output_dir(base_dir: Path) -> Path:
    return base_dir / DEFAULT_OUTPUT_DIR


def discover(config: CensorConfig, base_dir: Path) -> dict[str, list[str]]:
    """List the files inside every configured directory."""
    found: dict[str, list[str]] = {}
    for directory in config.dirs:
        folder = base_dir / directory.path
        if not folder.is_dir():
            raise MissingDirectory(f"No such directory: {folder}")
        found[directory.path] = list_files(folder)
    return found


def build_plan(
    config: CensorConfig,
    base_dir: str | Path,
    output_dir: str | Path | None = None
) -> Plan:
    """Match every configured directory against the disk and assign destinations."""
    base = Path(base_dir)
    out = Path(output_dir) if output_dir is not None else default_output_dir(base)
    resolved = match(config.dirs, discover(config, base), base_dir=base, config=config)
    tasks = tuple(
        Task(resolved=r, dest=out / r.directory.path / r.path.name)
        for r in resolved
    )
    plan = Plan(config=config, base_dir=base, output_dir=out, tasks=tasks)
    logger.info(
        "planned %d file(s) under %s (%d unknown, %d silenced)",
        len(tasks), base, len(plan.unknown), len(plan.silenced),
    )
    return plan
