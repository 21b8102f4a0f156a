from __future__ import annotations

from pathlib import Path

from batchcensor.matching.matcher import index_files, match, match_directory
from batchcensor.types import CensorConfig, DirectoryConfig, FileConfig, PolicyKind, ReplaceRule


def _ar2() -> DirectoryConfig:
    return DirectoryConfig(
        path="ar2",
        file_prefix="AR2_",
        file_extension="wav",
        files=(
            FileConfig(path="AAAA_01"),
            FileConfig(path="ABAA_01", replace=(ReplaceRule("fuck", "00.876-01.199"),)),
        ),
    )


def test_match_known_and_unknown_files():
    base = Path("/data")
    names = ["AR2_ZZZZ_99.wav", "AR2_ABAA_01.wav", "AR2_AAAA_01.wav"]
    resolved = match([_ar2()], {"ar2": names}, base_dir=base)

    by_name = {r.path.name: r for r in resolved}
    assert [r.path.name for r in resolved] == sorted(names)
    assert by_name["AR2_AAAA_01.wav"].policy_kind is PolicyKind.WHITELIST
    assert by_name["AR2_ABAA_01.wav"].policy_kind is PolicyKind.CENSOR
    assert by_name["AR2_ZZZZ_99.wav"].policy_kind is PolicyKind.MUTE_ALL
    assert not by_name["AR2_ZZZZ_99.wav"].known
    assert by_name["AR2_ABAA_01.wav"].path == base / "ar2" / "AR2_ABAA_01.wav"


def test_configured_but_absent_files_produce_nothing():
    resolved = match([_ar2()], {"ar2": ["AR2_AAAA_01.wav"]}, base_dir=Path("."))
    assert [r.path.name for r in resolved] == ["AR2_AAAA_01.wav"]


def test_unconfigured_directory_is_ignored():
    discovered = {"ar2": ["AR2_AAAA_01.wav"], "other": ["AR2_AAAA_01.wav"]}
    resolved = match([_ar2()], discovered, base_dir=Path("."))
    assert len(resolved) == 1
    assert resolved[0].directory.path == "ar2"


def test_name_matching_is_case_sensitive():
    resolved = match_directory(_ar2(), ["AR2_aaaa_01.wav"], base_dir=Path("."))
    assert resolved[0].policy_kind is PolicyKind.MUTE_ALL
    assert resolved[0].file_config is None


def test_wrong_prefix_is_unknown_audio():
    resolved = match_directory(_ar2(), ["XX_AAAA_01.wav"], base_dir=Path("."))
    assert resolved[0].policy_kind is PolicyKind.MUTE_ALL
    assert not resolved[0].companion


def test_companion_files_are_copied():
    resolved = match_directory(_ar2(), ["AR2_AAAA_01.txt", "notes"], base_dir=Path("."))
    assert all(r.companion for r in resolved)
    assert all(r.policy_kind is PolicyKind.WHITELIST for r in resolved)


def test_extension_inherited_from_root():
    directory = DirectoryConfig(path="d", files=(FileConfig(path="a"),))
    config = CensorConfig(dirs=(directory,), file_extension="ogg")
    resolved = match_directory(directory, ["a.ogg"], base_dir=Path("."), config=config)
    assert resolved[0].known
    assert resolved[0].policy_kind is PolicyKind.WHITELIST


def test_enumerated_entries():
    directory = DirectoryConfig(
        path="d",
        file_extension="wav",
        files=(FileConfig(path="line_$$"), FileConfig(path="line_$$"), FileConfig(path="x_$@")),
    )
    assert list(index_files(directory)) == ["line_01", "line_02", "x_AC"]
    resolved = match_directory(directory, ["line_02.wav", "x_AC.wav"], base_dir=Path("."))
    assert all(r.known for r in resolved)


def test_missing_transcript_marker_mutes_known_file():
    directory = DirectoryConfig(
        path="d",
        file_extension="wav",
        files=(FileConfig(path="a", transcript="hello [word] there"),),
    )
    resolved = match_directory(directory, ["a.wav"], base_dir=Path("."))
    assert resolved[0].known
    assert resolved[0].policy_kind is PolicyKind.MUTE_ALL


def test_unmatched_audio_in_other_formats_is_muted():
    names = ["AR2_ZZZZ_98.flac", "AR2_AAAA_01.WAV", "AR2_ZZZZ_97.ogg", "AR2_AAAA_01.txt"]
    resolved = {r.path.name: r for r in match_directory(_ar2(), names, base_dir=Path("."))}
    for name in ("AR2_ZZZZ_98.flac", "AR2_AAAA_01.WAV", "AR2_ZZZZ_97.ogg"):
        assert not resolved[name].companion
        assert not resolved[name].known
        assert resolved[name].policy_kind is PolicyKind.MUTE_ALL
    assert resolved["AR2_AAAA_01.txt"].companion
