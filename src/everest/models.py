"""Core domain models for leveled exercises and exams."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

PLACEHOLDER = "?"
KEY_BACKSPACE = "backspace"
ACCEPTED_KEYS = frozenset("0123456789X")


class QuestionsStatus(str, Enum):
    """Derived status of one question or a group of questions."""

    PARTIAL = "partial"
    WRONG = "wrong"
    CORRECT = "correct"


class SectionKind(str, Enum):
    EXERCISE = "exercise"
    EXAM = "exam"


class ScrollType(str, Enum):
    """Scroll hint for the rendering layer."""

    NONE = "none"
    ANIMATE = "animate"
    JUMP = "jump"


def joint_status(questions: Iterable[Question]) -> QuestionsStatus:
    """Combine question statuses: partial dominates, then any mismatch is wrong."""
    statuses = [question.status() for question in questions]
    if QuestionsStatus.PARTIAL in statuses:
        return QuestionsStatus.PARTIAL
    if QuestionsStatus.WRONG in statuses:
        return QuestionsStatus.WRONG
    return QuestionsStatus.CORRECT


@dataclass
class Question:
    """One fill-in question with a `?` marker per blank."""

    template: str
    correct_inputs: tuple[str, ...]
    position: int = 0
    kind: SectionKind = SectionKind.EXERCISE
    inputs: list[str | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        blanks = self.template.count(PLACEHOLDER)
        if blanks != len(self.correct_inputs):
            raise ValueError(
                f"Question '{self.template}' has {blanks} blanks but {len(self.correct_inputs)} answers."
            )
        if not self.inputs:
            self.inputs = [None] * blanks
        elif len(self.inputs) != blanks:
            raise ValueError(f"Question '{self.template}' expects {blanks} inputs.")

    @property
    def has_inputs(self) -> bool:
        return any(value is not None for value in self.inputs)

    def status(self) -> QuestionsStatus:
        if any(value is None for value in self.inputs):
            return QuestionsStatus.PARTIAL
        if all(value == expected for value, expected in zip(self.inputs, self.correct_inputs)):
            return QuestionsStatus.CORRECT
        return QuestionsStatus.WRONG

    def update_input(self, slot: int, value: str | None) -> None:
        """Set one blank; out-of-range slots are ignored."""
        if 0 <= slot < len(self.inputs):
            self.inputs[slot] = value

    def clear_input(self, slot: int) -> None:
        self.update_input(slot, None)

    def update_inputs(self, values: Sequence[str | None]) -> None:
        """Replace all inputs at once, keeping the slot count."""
        if len(values) != len(self.inputs):
            raise ValueError(f"Expected {len(self.inputs)} inputs, got {len(values)}.")
        self.inputs[:] = list(values)

    def clear(self) -> None:
        self.inputs[:] = [None] * len(self.inputs)

    def next_blank(self) -> int | None:
        for slot, value in enumerate(self.inputs):
            if value is None:
                return slot
        return None

    def last_filled(self) -> int | None:
        for slot in range(len(self.inputs) - 1, -1, -1):
            if self.inputs[slot] is not None:
                return slot
        return None

    def render(self, blank: str = "_") -> str:
        """Substitute filled inputs into the template from left to right."""
        parts = self.template.split(PLACEHOLDER)
        rendered = [parts[0]]
        for value, rest in zip(self.inputs, parts[1:]):
            rendered.append(blank if value is None else value)
            rendered.append(rest)
        return "".join(rendered)

    def stringify_inputs(self) -> str:
        return json.dumps(self.inputs)

    def unstringify_inputs(self, text: str) -> list[str | None]:
        """Parse stored inputs; raise ValueError when the text does not fit this question."""
        try:
            raw: object = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Stored inputs are not valid JSON: {text!r}") from exc
        if not isinstance(raw, list):
            raise ValueError(f"Stored inputs must be a list: {text!r}")
        if len(raw) != len(self.inputs):
            raise ValueError(f"Stored inputs have length {len(raw)}, expected {len(self.inputs)}.")
        values: list[str | None] = []
        for item in raw:
            if item is not None and (not isinstance(item, str) or item not in ACCEPTED_KEYS):
                raise ValueError(f"Stored input {item!r} is not an accepted key.")
            values.append(item)
        return values

    def full_id(self, level: Level) -> str:
        """Stable persistence key for this question."""
        return f"{level.index}:{self.kind.value}:{self.position}"


class Section:
    """Ordered questions with one active cursor, shared by exercises and exams."""

    kind = SectionKind.EXERCISE

    def __init__(self, groups: Sequence[Sequence[Question]]) -> None:
        self.questions: list[Question] = []
        self._group_bounds: list[tuple[int, int]] = []
        for group in groups:
            start = len(self.questions)
            self.questions.extend(group)
            if len(self.questions) > start:
                self._group_bounds.append((start, len(self.questions)))
        for position, question in enumerate(self.questions):
            question.position = position
            question.kind = self.kind
        self.active_index = 0
        self.recompute_active_index()

    def __len__(self) -> int:
        return len(self.questions)

    @property
    def complete(self) -> bool:
        return self.active_index >= len(self.questions)

    def full_questions(self) -> list[list[tuple[int, Question]]]:
        """Return the visual groups as (index, question) pairs."""
        return [[(i, self.questions[i]) for i in range(start, end)] for start, end in self._group_bounds]

    def group_of(self, index: int) -> int | None:
        for group, (start, end) in enumerate(self._group_bounds):
            if start <= index < end:
                return group
        return None

    def is_active_group(self, group: int) -> bool:
        start, end = self._group_bounds[group]
        return start <= self.active_index < end

    def joint_status(self) -> QuestionsStatus:
        return joint_status(self.questions)

    def recompute_active_index(self) -> None:
        """Point the cursor at the first question that is not correct."""
        for index, question in enumerate(self.questions):
            if question.status() is not QuestionsStatus.CORRECT:
                self.active_index = index
                return
        self.active_index = len(self.questions)

    def reachable(self, index: int) -> bool:
        if not 0 <= index < len(self.questions):
            return False
        if self.questions[index].has_inputs:
            return True
        return all(question.status() is QuestionsStatus.CORRECT for question in self.questions[:index])

    def tapped(self, index: int) -> bool:
        """Move the cursor to a reachable question; return whether it moved."""
        if not self.reachable(index) or index == self.active_index:
            return False
        self.active_index = index
        return True

    def key_pressed(self, key: str) -> int | None:
        """Apply one key to the active question; return the index of a changed question."""
        if key != KEY_BACKSPACE and key not in ACCEPTED_KEYS:
            return None
        if self.complete:
            if key == KEY_BACKSPACE and self.questions:
                self.active_index = len(self.questions) - 1
            return None
        index = self.active_index
        question = self.questions[index]
        if key == KEY_BACKSPACE:
            slot = question.last_filled()
            if slot is None:
                if index > 0:
                    self.active_index = index - 1
                return None
            question.clear_input(slot)
        else:
            slot = question.next_blank()
            if slot is None:
                return None
            question.update_input(slot, key)
        self.recompute_active_index()
        return index

    def clear(self) -> None:
        for question in self.questions:
            question.clear()
        self.active_index = 0


class Exercise(Section):
    kind = SectionKind.EXERCISE


class Exam(Section):
    kind = SectionKind.EXAM


@dataclass
class Level:
    """One exercise paired with one exam."""

    index: int
    title: str
    exercise: Exercise
    exam: Exam
    clicked: bool = False

    @property
    def exam_unlocked(self) -> bool:
        return self.exercise.joint_status() is QuestionsStatus.CORRECT

    def mark_clicked(self) -> None:
        self.clicked = True

    def sections(self) -> tuple[Exercise, Exam]:
        return (self.exercise, self.exam)

    def all_questions(self) -> Iterable[Question]:
        for section in self.sections():
            yield from section.questions
