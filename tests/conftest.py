from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from everest.game import Game  # noqa: E402
from everest.models import Exam, Exercise, Level, Question  # noqa: E402


def make_question(template: str, answer: str) -> Question:
    return Question(template=template, correct_inputs=tuple(answer))


def make_levels() -> list[Level]:
    """Three small levels: an entry exam, then two exercise/exam pairs."""
    return [
        Level(0, "Start", Exercise([]), Exam([[make_question("1 + 1 = ?", "2")]])),
        Level(
            1,
            "One",
            Exercise([[make_question("1 + 2 = ?", "3")], [make_question("3 + 4 = ?", "7")]]),
            Exam([[make_question("2 + 2 = ?", "4"), make_question("5 + 5 = ??", "10")]]),
        ),
        Level(2, "Two", Exercise([[make_question("9 - 9 = ?", "0")]]), Exam([[make_question("2 - 3 = ?", "X")]])),
    ]


@pytest.fixture
def levels() -> list[Level]:
    return make_levels()


@pytest.fixture
def game(levels: list[Level]) -> Iterator[Game]:
    current = Game(levels)
    try:
        yield current
    finally:
        current.close()


def type_keys(game: Game, keys: str) -> None:
    for key in keys:
        game.key_pressed(key)
