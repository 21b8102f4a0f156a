"""Execute a censoring plan, one independent pipeline per file."""
from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from batchcensor.batch.plan import Plan, Task, build_plan
from batchcensor.clips.registry import ClipRegistry, build_registry
from batchcensor.config.validator import validate_config
from batchcensor.dsp.transform import transform
from batchcensor.errors import CensorError, error_kind
from batchcensor.io.audio import copy_file, load_audio, write_audio
from batchcensor.matching.resolver import resolve
from batchcensor.types import CensorConfig, FileOutcome, PolicyKind, Status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    plan: Plan
    outcomes: tuple[FileOutcome, ...]
    cancelled: bool = False

    @property
    def failures(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status is Status.ERROR]


def default_workers() -> int:
    return max(1, (os.cpu_count() or 2) - 1)


def _failed(task: Task, exc: BaseException) -> FileOutcome:
    return FileOutcome(
        source=task.source,
        dest=task.dest,
        policy=None if task.resolved.companion else task.resolved.policy_kind,
        status=Status.ERROR,
        error_kind=error_kind(exc),
        error=str(exc),
        companion=task.resolved.companion,
    )


def process_task(
    task: Task,
    registry: ClipRegistry,
    cancel_event: threading.Event | None = None
) -> FileOutcome:
    """Decode, transform, encode and publish a single file."""
    resolved = task.resolved
    if cancel_event is not None and cancel_event.is_set():
        return FileOutcome(
            source=task.source,
            dest=None,
            policy=None if resolved.companion else resolved.policy_kind,
            status=Status.SKIPPED,
            companion=resolved.companion,
        )
    try:
        if resolved.companion or resolved.policy_kind is PolicyKind.WHITELIST:
            copy_file(task.source, task.dest)
            return FileOutcome(
                source=task.source,
                dest=task.dest,
                policy=None if resolved.companion else PolicyKind.WHITELIST,
                status=Status.OK,
                companion=resolved.companion,
            )
        audio = load_audio(task.source)
        policy = resolve(resolved.file_config, audio.fs, audio.frames)
        samples = transform(audio.samples, policy, registry, fs=audio.fs)
        write_audio(task.dest, audio, samples)
        return FileOutcome(
            source=task.source,
            dest=task.dest,
            policy=policy.kind,
            status=Status.OK,
            censored_ranges=len(policy.ranges),
            duration_s=audio.duration,
        )
    except (CensorError, OSError) as exc:
        logger.debug("failed to run: %s", task.describe(), exc_info=True)
        return _failed(task, exc)


def execute_plan(
    plan: Plan,
    registry: ClipRegistry,
    *,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_outcome: Callable[[FileOutcome], None] | None = None
) -> BatchResult:
    """
    Run every task of a plan.

    Files are independent, so failures are recorded and the batch carries
    on. Setting `cancel_event` (or Ctrl-C) stops new files from starting;
    files already in progress are completed.
    """
    cancel_event = cancel_event or threading.Event()
    tasks = plan.tasks
    outcomes: list[FileOutcome | None] = [None] * len(tasks)

    def _record(i: int, outcome: FileOutcome) -> None:
        outcomes[i] = outcome
        if on_outcome is not None:
            on_outcome(outcome)

    max_workers = min(max(1, int(workers)), max(1, len(tasks)))
    if max_workers == 1:
        for i, task in enumerate(tasks):
            try:
                _record(i, process_task(task, registry, cancel_event))
            except KeyboardInterrupt:
                logger.warning("interrupted; skipping remaining files")
                cancel_event.set()
                _record(i, process_task(task, registry, cancel_event))
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as ex:
            futures = {
                ex.submit(process_task, task, registry, cancel_event): i
                for i, task in enumerate(tasks)
            }
            pending = set(futures)
            while pending:
                try:
                    for fut in as_completed(pending):
                        pending.discard(fut)
                        _record(futures[fut], fut.result())
                except KeyboardInterrupt:
                    logger.warning("interrupted; finishing files already in progress")
                    cancel_event.set()

    return BatchResult(
        plan=plan,
        outcomes=tuple(o for o in outcomes if o is not None),
        cancelled=cancel_event.is_set(),
    )


def prepare(
    config: CensorConfig,
    base_dir: str | Path,
    *,
    output_dir: str | Path | None = None,
    registry: ClipRegistry | None = None,
    fallback: str | dict | None = None,
    eager: bool = True
) -> tuple[Plan, ClipRegistry]:
    """
    Validate a configuration and build its plan without touching any output.

    With `eager` every referenced replacement kind must be registered and
    every clip the plan needs is decoded up front, so a bad entry aborts the
    run before partial output exists.
    """
    if registry is None:
        registry = build_registry(config, fallback=fallback)
    validate_config(config, registry if eager else None)
    plan = build_plan(config, base_dir, output_dir)
    if eager:
        registry.preload(plan.censor_kinds())
    return plan, registry


def run_batch(
    config: CensorConfig,
    base_dir: str | Path,
    *,
    output_dir: str | Path | None = None,
    registry: ClipRegistry | None = None,
    fallback: str | dict | None = None,
    workers: int = 1,
    eager: bool = True,
    cancel_event: threading.Event | None = None,
    on_outcome: Callable[[FileOutcome], None] | None = None
) -> BatchResult:
    """Validate, plan and execute a configuration rooted at base_dir."""
    plan, registry = prepare(
        config,
        base_dir,
        output_dir=output_dir,
        registry=registry,
        fallback=fallback,
        eager=eager,
    )
    return execute_plan(
        plan,
        registry,
        workers=workers,
        cancel_event=cancel_event,
        on_outcome=on_outcome,
    )
