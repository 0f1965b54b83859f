"""CLI entrypoint: a text rendering of the exams and exercise screens."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable

from .config import AppConfig, parse_db_path
from .content_loader import load_levels
from .game import Game, load_game
from .models import ACCEPTED_KEYS, KEY_BACKSPACE, QuestionsStatus, Section, joint_status
from .progress import open_store
from .settings import (
    PURE_BLACK_KEY,
    THEME_MODE_KEY,
    ThemeMode,
    decode_pure_black,
    decode_theme_mode,
    encode_pure_black,
    encode_theme_mode,
)

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
BACK_COMMANDS = {"b", ":b", ":back"}
QUIT_COMMANDS = {"q", ":q", ":quit"}
BACKSPACE_INPUTS = {"<", "backspace"}
STATUS_MARKS = {
    QuestionsStatus.PARTIAL: "( )",
    QuestionsStatus.CORRECT: "(ok)",
    QuestionsStatus.WRONG: "(x)",
}
THEME_CHOICES = {"1": ThemeMode.LIGHT, "2": ThemeMode.SYSTEM, "3": ThemeMode.DARK}


class QuitApp(Exception):
    """Signal immediate app exit from nested screens."""


def _game(config: AppConfig) -> Game:
    """Open the store and build the game with its stored progress."""
    store = open_store(config.db_path)
    return load_game(load_levels(), store, debug_unlock_all=config.debug_unlock_all)


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="everest", description="Leveled math exercises and exams")
    parser.add_argument("command", nargs="?", default="play", choices=["play"])
    parser.add_argument("--db", help="progress database path, ':memory:', or 'none' to disable persistence")
    parser.add_argument("--debug-unlock-all", action="store_true", help="open every level and exam")
    parser.add_argument("--log-level", help="logging level name")
    args = parser.parse_args(argv)

    config = AppConfig.from_env()
    config = AppConfig(
        db_path=parse_db_path(args.db) if args.db is not None else config.db_path,
        debug_unlock_all=args.debug_unlock_all or config.debug_unlock_all,
        log_level=(args.log_level or config.log_level).upper(),
    )
    logging.basicConfig(level=config.log_level, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    return play_shell(config=config)


def play_shell(input_fn: InputFn = input, print_fn: PrintFn = print, *, config: AppConfig | None = None) -> int:
    """Run the exams screen until the player quits."""
    game = _game(config or AppConfig.from_env())
    try:
        if not game.persistent:
            print_fn("Progress is not saved in this session.")
        while True:
            _print_exams_screen(game, print_fn)
            choice = input_fn("Answer, or l N / t [L] N / s / q: ").strip()
            lowered = choice.lower()
            if lowered in QUIT_COMMANDS:
                if game.persistent or _confirm(input_fn, "Progress will be lost. Quit anyway? (y/N): "):
                    return 0
                continue
            if lowered == "s":
                _settings_flow(game, input_fn, print_fn)
                continue
            if lowered.startswith("l "):
                level_idx = _parse_int(lowered[2:])
                if level_idx is not None and _without_exercises(game, level_idx):
                    print_fn("That level has no exercises.")
                    continue
                if level_idx is None or not _level_flow(game, level_idx, input_fn, print_fn):
                    print_fn("That level is locked.")
                continue
            if lowered.startswith("t "):
                _exam_tap(game, lowered[2:].split(), print_fn)
                continue
            if not _feed_keys(game, choice):
                print_fn("Invalid choice.")
    except QuitApp:
        return 0
    finally:
        game.close()


def _level_flow(game: Game, level_idx: int, input_fn: InputFn, print_fn: PrintFn) -> bool:
    """Run the exercise screen of one level."""
    if not game.push_level(level_idx):
        return False
    level = game.levels[level_idx]
    try:
        while True:
            print_fn(f"\n=== Level {level.index}: {level.title} ===")
            _print_section(level.exercise, is_focused=True, animate=game.do_status_animation(), print_fn=print_fn)
            if level.exam_unlocked:
                print_fn("Exercises solved. The exam is open.")
            choice = input_fn("Answer, or t N / b / q: ").strip()
            lowered = choice.lower()
            if lowered in BACK_COMMANDS:
                return True
            if lowered in QUIT_COMMANDS:
                raise QuitApp
            if lowered.startswith("t "):
                index = _parse_int(lowered[2:])
                if index is None or not game.level_tapped(index - 1, in_exam=False):
                    print_fn("That question cannot be selected yet.")
                continue
            if not _feed_keys(game, choice):
                print_fn("Invalid choice.")
    finally:
        game.pop_level()


def _exam_tap(game: Game, parts: list[str], print_fn: PrintFn) -> None:
    """Tap an exam question: `N` in the focused exam or `L N` in level L."""
    numbers: list[int] = []
    for part in parts:
        number = _parse_int(part)
        if number is None:
            break
        numbers.append(number)
    if not numbers or len(numbers) != len(parts) or len(numbers) > 2:
        print_fn("Invalid choice.")
        return
    level_idx = numbers[0] if len(numbers) == 2 else None
    index = numbers[-1]
    if not game.level_tapped(index - 1, in_exam=True, level_idx=level_idx):
        print_fn("That question cannot be selected yet.")


def _without_exercises(game: Game, level_idx: int) -> bool:
    return 0 <= level_idx < len(game.levels) and not game.levels[level_idx].exercise.questions


def _feed_keys(game: Game, text: str) -> bool:
    """Send typed characters as key presses; return False for unsupported input."""
    if text.lower() in BACKSPACE_INPUTS:
        return game.key_pressed(KEY_BACKSPACE)
    keys = [char.upper() for char in text if not char.isspace()]
    if not keys or any(key not in ACCEPTED_KEYS for key in keys):
        return False
    consumed = False
    for key in keys:
        consumed = game.key_pressed(key) or consumed
    return consumed


def _print_exams_screen(game: Game, print_fn: PrintFn) -> None:
    print_fn("\n=== Everest ===")
    for level in game.levels:
        if level.index > 0:
            if not game.level_unlocked(level.index):
                marker = "locked"
            elif level.index == game.levels_unlocked and not level.clicked:
                marker = "new"
            else:
                marker = "open"
            print_fn(f"Level {level.index}: {level.title} [{marker}]")
        if game.exam_unlocked(level.index):
            is_focused = game.in_exam_screen and level.index == game.active_exam
            _print_section(level.exam, is_focused=is_focused, animate=game.do_status_animation(), print_fn=print_fn)
    if game.finished:
        print_fn("\nAll exams solved. Well done!")


def _print_section(section: Section, *, is_focused: bool, animate: bool, print_fn: PrintFn) -> None:
    for group_index, group in enumerate(section.full_questions()):
        questions = [question for _, question in group]
        status = joint_status(questions)
        is_active = is_focused and section.is_active_group(group_index)
        for offset, (index, question) in enumerate(group):
            cursor = ">" if is_focused and index == section.active_index else " "
            line = f" {cursor} {index + 1:>2}. {question.render()}"
            if offset == len(group) - 1:
                line = f"{line}  {STATUS_MARKS[status]}"
                if is_active and animate and status is QuestionsStatus.WRONG:
                    line = f"{line} not quite"
            print_fn(line)


def _settings_flow(game: Game, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Change theme settings or reset all progress."""
    theme_mode = decode_theme_mode(game.load_key_value(THEME_MODE_KEY))
    pure_black = decode_pure_black(game.load_key_value(PURE_BLACK_KEY))
    while True:
        print_fn("\n=== Settings ===")
        print_fn(f"Theme: {theme_mode.value}")
        for choice, mode in THEME_CHOICES.items():
            print_fn(f"{choice}) {mode.value.capitalize()} theme")
        print_fn(f"p) Black background in dark theme: {'on' if pure_black else 'off'}")
        print_fn("r) Restart from the beginning")
        print_fn("b) Back")
        choice = input_fn("Choose: ").strip().lower()
        if choice in BACK_COMMANDS:
            return
        if choice in QUIT_COMMANDS:
            raise QuitApp
        if choice in THEME_CHOICES:
            theme_mode = THEME_CHOICES[choice]
            game.store_key_value(THEME_MODE_KEY, encode_theme_mode(theme_mode))
        elif choice == "p":
            pure_black = not pure_black
            game.store_key_value(PURE_BLACK_KEY, encode_pure_black(pure_black))
        elif choice == "r":
            confirmation = input_fn("Type 'reset' to erase all progress: ").strip().lower()
            if confirmation == "reset":
                game.reset_progress()
                print_fn("Progress erased.")
            else:
                print_fn("Reset cancelled.")
        else:
            print_fn("Invalid choice.")


def _confirm(input_fn: InputFn, prompt: str) -> bool:
    return input_fn(prompt).strip().lower() in {"y", "yes"}


def _parse_int(text: str) -> int | None:
    stripped = text.strip()
    if not stripped.isdigit():
        return None
    return int(stripped)


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
