"""Load declarative level content from bundled JSON resources."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any

from .models import ACCEPTED_KEYS, PLACEHOLDER, Exam, Exercise, Level, Question

CONTENT_PACKAGE = "everest.content.levels"


def _question_from_dict(level_index: int, raw: dict[str, Any]) -> Question:
    """Build a question from raw JSON content."""
    template = str(raw["q"])
    answer = str(raw.get("answer", ""))
    if template.count(PLACEHOLDER) != len(answer):
        raise ValueError(f"Level {level_index}: question '{template}' does not match answer '{answer}'.")
    invalid = [char for char in answer if char not in ACCEPTED_KEYS]
    if invalid:
        raise ValueError(f"Level {level_index}: answer '{answer}' contains unsupported keys {invalid}.")
    return Question(template=template, correct_inputs=tuple(answer))


def _level_from_dict(raw: dict[str, Any]) -> Level:
    """Build a level from raw JSON content."""
    index = int(raw["index"])
    groups = [[_question_from_dict(index, item) for item in group] for group in raw.get("exercise", [])]
    exam = [_question_from_dict(index, item) for item in raw.get("exam", [])]
    return Level(
        index=index,
        title=str(raw.get("title", "")),
        exercise=Exercise(groups),
        exam=Exam([exam]),
    )


def load_levels() -> list[Level]:
    """Load bundled levels."""
    raw_levels = [
        json.loads(entry.read_text(encoding="utf-8-sig"))
        for entry in resources.files(CONTENT_PACKAGE).iterdir()
        if entry.name.endswith(".json")
    ]
    return _build_levels(raw_levels)


def load_levels_from_dir(path: Path) -> list[Level]:
    """Load levels from directory for tests/tools."""
    raw_levels = [json.loads(file_path.read_text(encoding="utf-8-sig")) for file_path in sorted(path.glob("*.json"))]
    return _build_levels(raw_levels)


def _build_levels(raw_levels: list[dict[str, Any]]) -> list[Level]:
    levels: dict[int, Level] = {}
    for raw in raw_levels:
        level = _level_from_dict(raw)
        if level.index in levels:
            raise ValueError(f"Duplicate level index: {level.index}")
        levels[level.index] = level
    ordered = [levels[index] for index in sorted(levels)]
    _validate_levels(ordered)
    return ordered


def _validate_levels(levels: list[Level]) -> None:
    """Validate contiguous indices and the exercise layout of each level."""
    if not levels:
        raise ValueError("No levels found.")
    for expected, level in enumerate(levels):
        if level.index != expected:
            raise ValueError(f"Level indices must be contiguous from 0; missing level {expected}.")
        if not level.exam.questions:
            raise ValueError(f"Level {level.index} has no exam questions.")
        # Level 0 is the entry exam; every later level teaches through exercises first.
        if (level.index > 0) == (not level.exercise.questions):
            if level.index == 0:
                raise ValueError("Level 0 must not have exercises.")
            raise ValueError(f"Level {level.index} has no exercises.")
