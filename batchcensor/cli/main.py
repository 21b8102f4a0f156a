"""Batch Censor CLI - censor, mute or pass through a tree of audio files."""
from __future__ import annotations
import argparse
import json
import logging
import sys
import threading
from pathlib import Path

from batchcensor.version import __version__
from batchcensor.batch.plan import Plan
from batchcensor.batch.runner import default_workers, execute_plan, prepare
from batchcensor.clips.registry import ClipRegistry
from batchcensor.config.init import complete_config
from batchcensor.config.loader import dump_config_yaml, iter_config_files, load_config
from batchcensor.errors import ConfigError
from batchcensor.reporting.summary import (
    build_batch_summary,
    render_markdown_summary,
    render_outcomes_csv,
)
from batchcensor.types import CensorConfig, FileOutcome, Status


EXIT_OK = 0
EXIT_BAD_ARGS = 2
EXIT_FILE_ERROR = 3
EXIT_CONFIG_ERROR = 4
EXIT_INTERNAL_ERROR = 5
EXIT_CANCELLED = 130

logger = logging.getLogger("batchcensor")


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _config_paths(args) -> list[Path]:
    paths = [Path(p) for p in (getattr(args, "config", None) or [])]
    if getattr(args, "config_dir", None):
        paths.extend(iter_config_files(args.config_dir))
    return paths


def _load_configs(args) -> list[tuple[CensorConfig, Path]]:
    """Load every configuration with the root its directories are relative to."""
    out = []
    for path in _config_paths(args):
        config = load_config(path)
        root = Path(args.root) if getattr(args, "root", None) else config.source_path.parent
        out.append((config, root))
    return out


def _prepare_all(args, *, eager: bool = True) -> list[tuple[Plan, ClipRegistry]]:
    """Validate and plan every configuration before anything is written."""
    prepared = []
    for config, root in _load_configs(args):
        prepared.append(prepare(
            config,
            root,
            output_dir=getattr(args, "output", None),
            fallback=getattr(args, "fallback", None),
            eager=eager,
        ))
    return prepared


def _print_outcome(outcome: FileOutcome) -> None:
    if outcome.status is Status.ERROR:
        print(f"[ERROR] {outcome.source}: {outcome.error_kind}: {outcome.error}", file=sys.stderr)
    elif outcome.status is Status.SKIPPED:
        print(f"[SKIP] {outcome.source}")
    else:
        label = "copy" if outcome.companion or outcome.policy is None else outcome.policy.value
        print(f"[OK] {outcome.source}: {label}")


def _no_configs(args) -> bool:
    if not _config_paths(args):
        print("Error: No configuration given (use --config or --config-dir).", file=sys.stderr)
        return True
    return False


def cmd_run(args) -> int:
    """Handle run command."""
    try:
        if _no_configs(args):
            return EXIT_BAD_ARGS
        prepared = _prepare_all(args, eager=not args.lazy)
    except ConfigError as e:
        print(f"Configuration error ({e.kind}): {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR

    try:
        workers = max(1, int(args.workers))
        cancel_event = threading.Event()
        outcomes: list[FileOutcome] = []
        unknown: list[str] = []
        silenced: list[str] = []
        kind_counts: dict[str, int] = {}
        cancelled = False
        for plan, registry in prepared:
            if cancel_event.is_set():
                break
            result = execute_plan(
                plan,
                registry,
                workers=workers,
                cancel_event=cancel_event,
                on_outcome=_print_outcome,
            )
            outcomes.extend(result.outcomes)
            cancelled = cancelled or result.cancelled
            unknown.extend(str(t.source) for t in plan.unknown)
            silenced.extend(str(t.source) for t in plan.silenced)
            for kind, count in plan.kind_counts().items():
                kind_counts[kind] = kind_counts.get(kind, 0) + count

        summary = build_batch_summary(
            outcomes,
            kind_counts=dict(sorted(kind_counts.items())),
            unknown=unknown,
            silenced=silenced,
            cancelled=cancelled,
        )
        if args.summary_json:
            Path(args.summary_json).write_text(json.dumps(summary, indent=2), encoding="utf-8")
        if args.summary_md:
            Path(args.summary_md).write_text(render_markdown_summary(summary), encoding="utf-8")
        if args.outcomes_csv:
            Path(args.outcomes_csv).write_text(render_outcomes_csv(outcomes), encoding="utf-8")

        counts = summary["totals"]["status_counts"]
        print(
            f"{counts['ok']} ok, {counts['error']} failed, {counts['skipped']} skipped; "
            f"{len(unknown)} muted without configuration"
        )
        if cancelled:
            return EXIT_CANCELLED
        if counts["error"]:
            return EXIT_FILE_ERROR
        return EXIT_OK

    except Exception as e:
        logger.debug("run failed", exc_info=True)
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR


def cmd_validate(args) -> int:
    """Handle validate command."""
    try:
        if _no_configs(args):
            return EXIT_BAD_ARGS
        prepared = _prepare_all(args)
    except ConfigError as e:
        print(f"Configuration error ({e.kind}): {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    for plan, _ in prepared:
        source = plan.config.source_path
        print(f"[OK] {source}: {len(plan.tasks)} file(s), {len(plan.unknown)} without configuration")
    return EXIT_OK


def cmd_list(args) -> int:
    """List files that will be muted."""
    try:
        if _no_configs(args):
            return EXIT_BAD_ARGS
        prepared = _prepare_all(args, eager=False)
    except ConfigError as e:
        print(f"Configuration error ({e.kind}): {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    for plan, _ in prepared:
        source = plan.config.source_path
        for task in plan.unknown:
            print(f"{source}: missing config for: {task.source}")
        for task in plan.silenced:
            print(f"{source}: silenced config for: {task.source}")
    return EXIT_OK


def cmd_stats(args) -> int:
    """Show how often each replacement kind is used."""
    try:
        if _no_configs(args):
            return EXIT_BAD_ARGS
        prepared = _prepare_all(args, eager=False)
    except ConfigError as e:
        print(f"Configuration error ({e.kind}): {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    counts: dict[str, int] = {}
    for plan, _ in prepared:
        for kind, count in plan.kind_counts().items():
            counts[kind] = counts.get(kind, 0) + count
    print("# Statistics")
    for kind, count in sorted(counts.items()):
        print(f"{kind} - {count}")
    return EXIT_OK


def cmd_init(args) -> int:
    """Write configurations completed with entries for unconfigured files."""
    try:
        if _no_configs(args):
            return EXIT_BAD_ARGS
        prepared = _prepare_all(args, eager=False)
    except ConfigError as e:
        print(f"Configuration error ({e.kind}): {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR
    if not any(plan.unknown for plan, _ in prepared):
        print("nothing to initialize: there are no missing files!")
        return EXIT_OK
    documents = []
    for plan, _ in prepared:
        completed, rejected = complete_config(plan.config, [t.resolved for t in plan.unknown])
        for path in rejected:
            print(f"Warning: cannot name {path} in {plan.config.source_path}", file=sys.stderr)
        documents.append(dump_config_yaml(completed))
    text = "---\n".join(documents)
    if args.out in (None, "-"):
        sys.stdout.write(text)
    else:
        Path(args.out).write_text(text, encoding="utf-8")
    return EXIT_OK


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        action="append",
        help="Configuration file (.json, .yaml, .yml); may be repeated"
    )
    parser.add_argument(
        "--config-dir", "-d",
        help="Directory of configuration files"
    )
    parser.add_argument(
        "--root", "-r",
        help="Root the configured directories are relative to (default: each config's folder)"
    )
    parser.add_argument(
        "--fallback",
        help="Replacement for kinds without a clip: 'tone', 'silence' or a clip path"
    )


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="batchcensor",
        description="Batch Censor - censor a tree of audio files from a configuration"
    )
    parser.add_argument(
        "--version", action="version",
        version=f"batchcensor {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Log progress (-v) or debug details (-vv)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Process every configured directory"
    )
    _add_config_args(run_parser)
    run_parser.add_argument(
        "--output", "-o",
        help="Output directory (default: <root>/output)"
    )
    run_parser.add_argument(
        "--workers",
        type=int,
        default=default_workers(),
        help="Parallel workers (default: cpu_count-1)"
    )
    run_parser.add_argument(
        "--lazy",
        action="store_true",
        help="Check replacement kinds per file instead of before the run"
    )
    run_parser.add_argument(
        "--summary-json",
        help="Write the batch summary JSON here"
    )
    run_parser.add_argument(
        "--summary-md",
        help="Write the batch summary Markdown here"
    )
    run_parser.add_argument(
        "--outcomes-csv",
        help="Write one CSV row per file here"
    )
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check configurations without writing output"
    )
    _add_config_args(validate_parser)
    validate_parser.set_defaults(func=cmd_validate)

    list_parser = subparsers.add_parser(
        "list",
        help="List files that will be muted"
    )
    _add_config_args(list_parser)
    list_parser.set_defaults(func=cmd_list)

    stats_parser = subparsers.add_parser(
        "stats",
        help="Count replacement kinds across configurations"
    )
    _add_config_args(stats_parser)
    stats_parser.set_defaults(func=cmd_stats)

    init_parser = subparsers.add_parser(
        "init",
        help="Add entries for unconfigured files and print the configuration"
    )
    _add_config_args(init_parser)
    init_parser.add_argument(
        "--out",
        default="-",
        help="Where to write the completed configuration YAML (default: stdout)"
    )
    init_parser.set_defaults(func=cmd_init)

    args = parser.parse_args()
    _configure_logging(args.verbose)

    if hasattr(args, "func"):
        sys.exit(args.func(args))
    else:
        parser.print_help()
        sys.exit(EXIT_BAD_ARGS)


if __name__ == "__main__":
    main()
