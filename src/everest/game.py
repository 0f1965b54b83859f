"""Game state: level progression, focus and navigation, and the persistence bridge."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TypeVar

from .models import (
    ACCEPTED_KEYS,
    KEY_BACKSPACE,
    Level,
    Question,
    QuestionsStatus,
    ScrollType,
    Section,
    SectionKind,
)
from .progress import AnswerRecord, ProgressStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[["Game"], None]


class Game:
    """Owns all levels and routes every mutation of their state.

    Two screens exist: the exams screen (navigation depth 0, focus on
    `active_exam`) and the exercise screen of `active_level` (depth > 0).
    Mutations run synchronously; store writes are queued on one worker
    thread in event order and never awaited by the caller.
    """

    def __init__(
        self, levels: list[Level], store: ProgressStore | None = None, *, debug_unlock_all: bool = False
    ) -> None:
        if not levels:
            raise ValueError("A game needs at least one level.")
        self.levels = levels
        self.store = store
        self.debug_unlock_all = debug_unlock_all
        self.levels_unlocked = 0
        self.active_level: int | None = None
        self.active_exam = 0
        self.finished = False
        self._depth = 0
        self._listeners: list[Listener] = []
        self._store_failed = False
        self._writer: ThreadPoolExecutor | None = None
        if store is not None:
            self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="everest-store")
        self._animate_status = False
        self._scroll = ScrollType.JUMP
        self._recompute_exams_state()

    # -- read-only state

    @property
    def in_exam_screen(self) -> bool:
        return self._depth == 0

    @property
    def persistent(self) -> bool:
        """Whether progress currently reaches the durable store."""
        return self.store is not None and not self._store_failed

    def level_unlocked(self, level_idx: int) -> bool:
        return 0 <= level_idx < len(self.levels) and (self.debug_unlock_all or level_idx <= self.levels_unlocked)

    def exam_unlocked(self, level_idx: int) -> bool:
        if not self.level_unlocked(level_idx):
            return False
        return self.debug_unlock_all or self.levels[level_idx].exam_unlocked

    def focused(self) -> tuple[Level, Section] | None:
        """Return the level and section receiving key presses, if any."""
        if self._depth > 0:
            if self.active_level is None:
                return None
            level = self.levels[self.active_level]
            return (level, level.exercise)
        if self.exam_unlocked(self.active_exam):
            level = self.levels[self.active_exam]
            return (level, level.exam)
        return None

    def do_status_animation(self) -> bool:
        """Whether a changed status should be animated (only right after a key press)."""
        return self._animate_status

    def do_scroll_animation(self) -> ScrollType:
        return self._scroll

    # -- observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-change listener and return a function removing it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Game listener %r failed.", listener)

    # -- navigation

    def push_level(self, level_idx: int) -> bool:
        """Open the exercise screen of an unlocked level that has exercises."""
        if not self.level_unlocked(level_idx) or not self.levels[level_idx].exercise.questions:
            return False
        self._depth += 1
        self.active_level = level_idx
        self._animate_status = False
        self._scroll = ScrollType.JUMP
        self._notify()
        return True

    def pop_level(self) -> bool:
        """Close the exercise screen; back on the exams screen the unlock state is rebuilt."""
        if self._depth == 0:
            return False
        self._depth -= 1
        if self._depth == 0:
            if self.active_level is not None:
                self.levels[self.active_level].mark_clicked()
            self.active_level = None
            self._recompute_exams_state()
            self._scroll = ScrollType.ANIMATE
        self._animate_status = False
        self._notify()
        return True

    # -- input

    def level_tapped(self, question_index: int, *, in_exam: bool, level_idx: int | None = None) -> bool:
        """Move focus to a tapped question if it may be answered now."""
        if in_exam:
            target = self.active_exam if level_idx is None else level_idx
            if not self.in_exam_screen or not self.exam_unlocked(target):
                return False
            section: Section = self.levels[target].exam
            if not section.reachable(question_index):
                return False
            changed = target != self.active_exam
            self.active_exam = target
        else:
            if self.in_exam_screen or self.active_level is None:
                return False
            section = self.levels[self.active_level].exercise
            if not section.reachable(question_index):
                return False
            changed = False
        changed = section.tapped(question_index) or changed
        if changed:
            self._animate_status = False
            self._scroll = ScrollType.NONE
            self._notify()
        return changed

    def key_pressed(self, key: str) -> bool:
        """Route one normalized key to the focused section; return whether it was consumed."""
        if key != KEY_BACKSPACE and key not in ACCEPTED_KEYS:
            return False
        focused = self.focused()
        if focused is None:
            return False
        level, section = focused
        cursor_before = (self.active_exam, section.active_index)
        changed = section.key_pressed(key)
        if changed is not None:
            self._store_answer(level, section.questions[changed])
            if section.kind is SectionKind.EXAM:
                self._recompute_exams_state()
        self._animate_status = changed is not None
        moved = cursor_before != (self.active_exam, section.active_index)
        self._scroll = ScrollType.ANIMATE if moved else ScrollType.NONE
        self._notify()
        return True

    # -- progression

    def recompute_exams_state(self) -> None:
        self._recompute_exams_state()
        self._notify()

    def _recompute_exams_state(self) -> None:
        # Exercise access to level i + 1 requires the exam of level i; it never relocks within a session.
        last = len(self.levels) - 1
        while self.levels_unlocked < last and self._exam_status(self.levels_unlocked) is QuestionsStatus.CORRECT:
            self.levels_unlocked += 1
        self.finished = self._exam_status(last) is QuestionsStatus.CORRECT
        if self._exam_status(self.active_exam) is QuestionsStatus.CORRECT:
            self.active_exam = self.levels_unlocked

    def _exam_status(self, level_idx: int) -> QuestionsStatus:
        return self.levels[level_idx].exam.joint_status()

    def reset_progress(self) -> None:
        """Forget every answer, in memory at once and in the store after pending writes."""
        for level in self.levels:
            for section in level.sections():
                section.clear()
            level.clicked = False
        self.levels_unlocked = 0
        self.active_level = None
        self.active_exam = 0
        self.finished = False
        self._depth = 0
        self._recompute_exams_state()
        self._animate_status = False
        self._scroll = ScrollType.JUMP
        self._submit(lambda store: store.delete_answers())
        self._notify()

    # -- persistence bridge

    def apply_answers(self, answers: Mapping[str, str], templates: Mapping[str, str] | None = None) -> int:
        """Restore stored inputs and return the number applied.

        Unreadable records are dropped, as are records whose stored question
        template (when `templates` is given) no longer matches the question.
        """
        applied = 0
        unmatched = set(answers)
        for level in self.levels:
            for question in level.all_questions():
                question_id = question.full_id(level)
                text = answers.get(question_id)
                if text is None:
                    continue
                unmatched.discard(question_id)
                stored_template = None if templates is None else templates.get(question_id)
                if stored_template is not None and stored_template != question.template:
                    logger.warning(
                        "Dropping stored answer %s: question changed from %r to %r.",
                        question_id,
                        stored_template,
                        question.template,
                    )
                    continue
                try:
                    question.update_inputs(question.unstringify_inputs(text))
                except ValueError as exc:
                    logger.warning("Dropping stored answer %s: %s", question_id, exc)
                    continue
                applied += 1
            for section in level.sections():
                section.recompute_active_index()
            if any(question.has_inputs for question in level.exercise.questions):
                level.mark_clicked()
        for question_id in sorted(unmatched):
            logger.warning("Dropping stored answer %s: no such question.", question_id)
        self._recompute_exams_state()
        self._scroll = ScrollType.JUMP
        self._notify()
        return applied

    def load_answers(self) -> dict[str, str]:
        """Return stored inputs by question id; empty without a store."""
        return {record.id: record.inputs for record in self.load_answer_records()}

    def load_answer_records(self) -> list[AnswerRecord]:
        future = self._submit(lambda store: store.list_answers())
        if future is None:
            return []
        return future.result() or []

    def store_key_value(self, key: str, value: str) -> None:
        self._submit(lambda store: store.put_value(key, value))

    def load_key_value(self, key: str) -> str | None:
        future = self._submit(lambda store: store.get_value(key))
        if future is None:
            return None
        return future.result()

    def _store_answer(self, level: Level, question: Question) -> None:
        record = AnswerRecord(
            id=question.full_id(level),
            level=str(level.index),
            question=question.template,
            inputs=question.stringify_inputs(),
        )
        self._submit(lambda store: store.put_answer(record))

    def _submit(self, operation: Callable[[ProgressStore], T]) -> Future[T | None] | None:
        if self._writer is None or self._store_failed:
            return None
        return self._writer.submit(self._run_store_operation, operation)

    def _run_store_operation(self, operation: Callable[[ProgressStore], T]) -> T | None:
        store = self.store
        if store is None or self._store_failed:
            return None
        try:
            return operation(store)
        except sqlite3.Error:
            logger.exception("Progress database failed; continuing in memory only.")
            self._store_failed = True
            return None

    def flush(self) -> None:
        """Block until every queued store operation has run."""
        if self._writer is not None:
            self._writer.submit(lambda: None).result()

    def close(self) -> None:
        """Flush pending writes and release the store."""
        if self._writer is not None:
            self._writer.shutdown(wait=True)
            self._writer = None
        if self.store is not None:
            self.store.close()


def load_game(levels: list[Level], store: ProgressStore | None, *, debug_unlock_all: bool = False) -> Game:
    """Build a game and restore its stored progress before anything is rendered."""
    game = Game(levels, store, debug_unlock_all=debug_unlock_all)
    records = game.load_answer_records()
    game.apply_answers(
        {record.id: record.inputs for record in records},
        templates={record.id: record.question for record in records},
    )
    return game
