from __future__ import annotations

from datetime import datetime, timezone
import csv
import hashlib
import io
import json
from typing import Iterable

import numpy as np

from batchcensor.types import FileOutcome, PolicyKind, Status


def _duration_stats(values: Iterable[float]) -> dict | None:
    vals = [float(v) for v in values if isinstance(v, (int, float))]
    if not vals:
        return None
    arr = np.asarray(vals, dtype=np.float64)
    return {
        "count": int(arr.size),
        "total": float(np.sum(arr)),
        "mean": float(np.mean(arr)),
        "min": float(np.min(arr)),
        "p50": float(np.percentile(arr, 50)),
        "max": float(np.max(arr)),
    }


def plan_checksum(outcomes: Iterable[FileOutcome]) -> str:
    """SHA256 over the sorted (source, policy) pairs; identical plans hash alike."""
    payload = sorted(
        [str(o.source), o.policy.value if o.policy else "copy"] for o in outcomes
    )
    canonical = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_batch_summary(
    outcomes: list[FileOutcome],
    *,
    kind_counts: dict[str, int] | None = None,
    unknown: Iterable[str] = (),
    silenced: Iterable[str] = (),
    cancelled: bool = False,
    generated_utc: str | None = None
) -> dict:
    """Aggregate per-file outcomes into a batch summary."""
    status_counts = {s.value: 0 for s in Status}
    policy_counts = {p.value: 0 for p in PolicyKind}
    policy_counts["copy"] = 0
    failure_causes: dict[str, int] = {}
    failures = []
    durations = []
    censored_ranges = 0

    for outcome in outcomes:
        status_counts[outcome.status.value] += 1
        if outcome.status is Status.ERROR:
            cause = outcome.error_kind or "unknown"
            failure_causes[cause] = failure_causes.get(cause, 0) + 1
            failures.append({
                "source": str(outcome.source),
                "error_kind": outcome.error_kind,
                "error": outcome.error,
            })
            continue
        if outcome.status is not Status.OK:
            continue
        key = "copy" if outcome.companion or outcome.policy is None else outcome.policy.value
        policy_counts[key] += 1
        censored_ranges += outcome.censored_ranges
        if outcome.duration_s is not None:
            durations.append(outcome.duration_s)

    generated_utc = generated_utc or datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    return {
        "schema_version": "1.0",
        "generated_utc": generated_utc,
        "cancelled": bool(cancelled),
        "totals": {
            "files": len(outcomes),
            "processed": status_counts[Status.OK.value],
            "status_counts": status_counts,
            "censored_ranges": censored_ranges,
        },
        "policy_counts": policy_counts,
        "failure_causes": dict(sorted(failure_causes.items(), key=lambda kv: kv[1], reverse=True)),
        "failures": failures,
        "unknown_files": sorted(unknown),
        "silenced_files": sorted(silenced),
        "kind_counts": dict(kind_counts or {}),
        "decoded_duration_s": _duration_stats(durations),
        "plan_checksum_sha256": plan_checksum(outcomes),
    }


def render_markdown_summary(summary: dict) -> str:
    """Render a Markdown summary."""
    lines = []
    totals = summary.get("totals", {})
    counts = totals.get("status_counts", {})
    lines.append("# Batch Censor Summary")
    lines.append("")
    if summary.get("cancelled"):
        lines.append("**Run was cancelled before all files were processed.**")
        lines.append("")
    lines.append("## Status Counts")
    lines.append("")
    for status in ("ok", "error", "skipped"):
        lines.append(f"- {status}: {counts.get(status, 0)}")
    lines.append("")
    lines.append("## Policies")
    lines.append("")
    for policy, count in summary.get("policy_counts", {}).items():
        lines.append(f"- {policy}: {count}")
    lines.append(f"- censored ranges: {totals.get('censored_ranges', 0)}")
    lines.append("")
    if summary.get("failures"):
        lines.append("## Failures")
        lines.append("")
        for failure in summary["failures"]:
            lines.append(f"- `{failure['source']}` ({failure['error_kind']}): {failure['error']}")
        lines.append("")
    if summary.get("unknown_files"):
        lines.append("## Muted (no configuration)")
        lines.append("")
        for path in summary["unknown_files"]:
            lines.append(f"- `{path}`")
        lines.append("")
    if summary.get("silenced_files"):
        lines.append("## Muted (unplaced transcript markers)")
        lines.append("")
        for path in summary["silenced_files"]:
            lines.append(f"- `{path}`")
        lines.append("")
    if summary.get("kind_counts"):
        lines.append("## Replacement Kinds")
        lines.append("")
        for kind, count in summary["kind_counts"].items():
            lines.append(f"- {kind}: {count}")
        lines.append("")
    return "\n".join(lines)


def render_outcomes_csv(outcomes: list[FileOutcome]) -> str:
    """Render one CSV row per processed file."""
    fieldnames = [
        "source",
        "dest",
        "policy",
        "status",
        "error_kind",
        "error",
        "censored_ranges",
        "duration_s",
        "companion",
    ]
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for outcome in outcomes:
        writer.writerow(outcome.as_dict())
    return buffer.getvalue()
