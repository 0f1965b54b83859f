"""Stored user settings and their versioned text encoding."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import cast

THEME_MODE_KEY = "settings:themeMode"
PURE_BLACK_KEY = "settings:pureBlack"
SETTINGS_FORMAT_VERSION = 1

logger = logging.getLogger(__name__)


class ThemeMode(str, Enum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


def _encode(value: object) -> str:
    return json.dumps({"format_version": SETTINGS_FORMAT_VERSION, "value": value})


def _decode_payload(text: str) -> object | None:
    """Return the stored value of a versioned payload, or None if it cannot be read."""
    try:
        raw_obj: object = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(raw_obj, dict):
        return None
    raw = cast(dict[str, object], raw_obj)
    version = raw.get("format_version")
    if not isinstance(version, int) or isinstance(version, bool):
        return None
    if version > SETTINGS_FORMAT_VERSION:
        logger.info("Setting format version %s is newer than supported %s.", version, SETTINGS_FORMAT_VERSION)
        return None
    return raw.get("value")


def encode_theme_mode(mode: ThemeMode) -> str:
    return _encode(mode.value)


def decode_theme_mode(text: str | None) -> ThemeMode:
    """Decode a stored theme mode, defaulting to following the system."""
    if text is None:
        return ThemeMode.SYSTEM
    value = _decode_payload(text)
    if value is None and text.startswith("ThemeMode."):
        # un-versioned values written as the enum's string form
        value = text.removeprefix("ThemeMode.")
    for mode in ThemeMode:
        if mode.value == value:
            return mode
    logger.info("Ignoring unreadable theme mode setting %r.", text)
    return ThemeMode.SYSTEM


def encode_pure_black(enabled: bool) -> str:
    return _encode(bool(enabled))


def decode_pure_black(text: str | None) -> bool:
    """Decode the pure-black flag, defaulting to False."""
    if text is None:
        return False
    if text in ("true", "false"):
        return text == "true"
    value = _decode_payload(text)
    if isinstance(value, bool):
        return value
    logger.info("Ignoring unreadable pure-black setting %r.", text)
    return False
