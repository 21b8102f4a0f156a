from __future__ import annotations

import pytest

from batchcensor.errors import MissingFileExtension
from batchcensor.matching.naming import (
    directory_extension,
    expand_enumeration,
    expected_file_name,
    split_extension,
    strip_affixes,
    uppercase_radix,
)
from batchcensor.types import CensorConfig, DirectoryConfig


def test_expand_enumeration():
    assert expand_enumeration("foo/bar/$", 0) == "foo/bar/1"
    assert expand_enumeration("foo/bar$$$/foo", 2) == "foo/bar003/foo"
    assert expand_enumeration("foo/bar$@/foo", 0) == "foo/barAA/foo"
    assert expand_enumeration("plain", 7) == "plain"


def test_uppercase_radix():
    assert uppercase_radix(0) == "AA"
    assert uppercase_radix(1) == "AB"
    assert uppercase_radix(25) == "AZ"
    assert uppercase_radix(26) == "BA"
    assert uppercase_radix(27) == "BB"
    assert uppercase_radix(51) == "BZ"
    assert uppercase_radix(52) == "CA"


def test_strip_affixes():
    d = DirectoryConfig(path="ar2", file_prefix="AR2_", file_suffix="_x", file_extension="wav")
    assert strip_affixes("AR2_ABAA_01_x.wav", d, "wav") == "ABAA_01"
    assert strip_affixes("AR2_ABAA_01.wav", d, "wav") is None
    assert strip_affixes("ar2_ABAA_01_x.wav", d, "wav") is None
    assert strip_affixes("AR2_ABAA_01_x.WAV", d, "wav") is None
    assert expected_file_name("ABAA_01", d, "wav") == "AR2_ABAA_01_x.wav"


def test_split_extension():
    assert split_extension("a.b.wav") == ("a.b", "wav")
    assert split_extension("README") == ("README", "")
    assert split_extension(".hidden") == (".hidden", "")


def test_directory_extension_is_inherited_and_required():
    d = DirectoryConfig(path="ar2")
    assert directory_extension(d, CensorConfig(file_extension="flac")) == "flac"
    assert directory_extension(DirectoryConfig(path="x", file_extension="wav"), CensorConfig(file_extension="flac")) == "wav"
    with pytest.raises(MissingFileExtension):
        directory_extension(d, CensorConfig())
