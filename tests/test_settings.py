import json

import pytest

from everest.settings import (
    ThemeMode,
    decode_pure_black,
    decode_theme_mode,
    encode_pure_black,
    encode_theme_mode,
)


@pytest.mark.parametrize("mode", list(ThemeMode))
def test_theme_mode_round_trip(mode: ThemeMode) -> None:
    assert decode_theme_mode(encode_theme_mode(mode)) is mode


def test_encoded_settings_carry_format_version() -> None:
    assert json.loads(encode_theme_mode(ThemeMode.DARK)) == {"format_version": 1, "value": "dark"}
    assert json.loads(encode_pure_black(True)) == {"format_version": 1, "value": True}


def test_theme_mode_defaults() -> None:
    assert decode_theme_mode(None) is ThemeMode.SYSTEM
    assert decode_theme_mode("garbage") is ThemeMode.SYSTEM
    assert decode_theme_mode('{"format_version": 2, "value": "dark"}') is ThemeMode.SYSTEM
    assert decode_theme_mode('{"format_version": 1, "value": "sepia"}') is ThemeMode.SYSTEM


def test_unversioned_values_are_understood() -> None:
    assert decode_theme_mode("ThemeMode.dark") is ThemeMode.DARK
    assert decode_theme_mode("ThemeMode.light") is ThemeMode.LIGHT
    assert decode_pure_black("true") is True
    assert decode_pure_black("false") is False


def test_pure_black() -> None:
    assert decode_pure_black(encode_pure_black(True)) is True
    assert decode_pure_black(encode_pure_black(False)) is False
    assert decode_pure_black(None) is False
    assert decode_pure_black('{"format_version": 1, "value": "yes"}') is False
    assert decode_pure_black("[]") is False
