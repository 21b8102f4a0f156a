"""Assign a censoring policy to a file entry."""
from __future__ import annotations

from batchcensor.config.transcript import Transcript, parse_transcript
from batchcensor.errors import OverlappingRanges
from batchcensor.ranges.parser import parse_time_range, time_ranges_overlap, to_sample_range
from batchcensor.types import CensorRange, FileConfig, Policy, PolicyKind, ReplaceRule


def file_transcript(file_config: FileConfig) -> Transcript | None:
    if file_config.transcript is None:
        return None
    return parse_transcript(file_config.transcript)


def effective_rules(file_config: FileConfig) -> tuple[ReplaceRule, ...]:
    """Explicit replace rules followed by the ones marked in the transcript."""
    transcript = file_transcript(file_config)
    if transcript is None:
        return tuple(file_config.replace)
    return tuple(file_config.replace) + transcript.replace


def has_missing_markers(file_config: FileConfig) -> bool:
    transcript = file_transcript(file_config)
    return bool(transcript and transcript.missing)


def policy_kind(file_config: FileConfig | None) -> PolicyKind:
    """Policy kind decidable without decoding the file."""
    if file_config is None or has_missing_markers(file_config):
        return PolicyKind.MUTE_ALL
    if not effective_rules(file_config):
        return PolicyKind.WHITELIST
    return PolicyKind.CENSOR


def check_rule_overlaps(rules: tuple[ReplaceRule, ...], *, where: str = "") -> None:
    """Reject rules whose time ranges intersect, before anything is decoded."""
    parsed = [(r, parse_time_range(r.range)) for r in rules]
    for i, (rule_a, a) in enumerate(parsed):
        for rule_b, b in parsed[i + 1:]:
            if time_ranges_overlap(a, b):
                prefix = f"{where}: " if where else ""
                raise OverlappingRanges(
                    f"{prefix}ranges {rule_a.range!r} ({rule_a.kind}) and "
                    f"{rule_b.range!r} ({rule_b.kind}) overlap"
                )


def resolve(
    file_config: FileConfig | None,
    sample_rate: float | None = None,
    total_samples: int | None = None
) -> Policy:
    """
    Resolve the full policy for a file.

    Unknown files are muted, entries without rules are whitelisted and
    entries with rules are censored over sample ranges computed for the
    file's sample rate.
    """
    kind = policy_kind(file_config)
    if kind is PolicyKind.MUTE_ALL:
        return Policy.mute_all()
    if kind is PolicyKind.WHITELIST:
        return Policy.whitelist()
    if sample_rate is None:
        raise ValueError("A sample rate is required to resolve censor ranges.")
    ranges: list[CensorRange] = []
    for rule in effective_rules(file_config):
        sample_range = to_sample_range(
            parse_time_range(rule.range), sample_rate, total_samples, text=rule.range
        )
        for existing in ranges:
            if existing.range.overlaps(sample_range):
                raise OverlappingRanges(
                    f"{file_config.path}: {rule.range!r} overlaps samples "
                    f"{existing.range.start}-{existing.range.end} ({existing.kind})"
                )
        ranges.append(CensorRange(range=sample_range, kind=rule.kind))
    return Policy.censor(ranges)
