"""Leveled math exercises and exams with persistent progress."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .game import Game, load_game
from .models import Exam, Exercise, Level, Question, QuestionsStatus, ScrollType

__all__ = [
    "Exam",
    "Exercise",
    "Game",
    "Level",
    "Question",
    "QuestionsStatus",
    "ScrollType",
    "__version__",
    "load_game",
]


def _source_tree_version() -> str | None:
    """Version from the checkout's pyproject.toml when running from source."""
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    if not pyproject.is_file():
        return None
    with pyproject.open("rb") as handle:
        project = tomllib.load(handle).get("project", {})
    if project.get("name") != "everest":
        return None
    value = project.get("version")
    return str(value) if value else None


__version__ = _source_tree_version() or ""
if not __version__:
    try:
        __version__ = version("everest")
    except PackageNotFoundError:
        __version__ = "0+unknown"
