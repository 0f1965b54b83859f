import json
from pathlib import Path

import pytest

from everest.content_loader import load_levels, load_levels_from_dir
from everest.game import Game
from everest.models import QuestionsStatus


def test_load_bundled_levels() -> None:
    levels = load_levels()
    assert [level.index for level in levels] == list(range(len(levels)))
    assert len(levels) >= 2
    assert levels[0].exercise.questions == []
    assert all(level.exercise.questions for level in levels[1:])
    assert all(level.exam.questions for level in levels)
    assert all(level.title for level in levels)


def test_bundled_question_ids_are_unique() -> None:
    levels = load_levels()
    ids = [question.full_id(level) for level in levels for question in level.all_questions()]
    assert len(ids) == len(set(ids))


def test_bundled_levels_can_be_played_to_the_end() -> None:
    game = Game(load_levels())
    try:
        for level in game.levels:
            if level.exercise.questions:
                assert game.push_level(level.index) is True
                for question in level.exercise.questions:
                    for key in question.correct_inputs:
                        game.key_pressed(key)
                assert level.exercise.joint_status() is QuestionsStatus.CORRECT
                game.pop_level()
            assert game.active_exam == level.index
            for question in level.exam.questions:
                for key in question.correct_inputs:
                    game.key_pressed(key)
            assert level.exam.joint_status() is QuestionsStatus.CORRECT
        assert game.finished is True
    finally:
        game.close()


def _write_levels(path: Path, levels: list[dict[str, object]]) -> None:
    for raw in levels:
        (path / f"level_{raw['index']:02}.json").write_text(json.dumps(raw), encoding="utf-8")


def _entry_level() -> dict[str, object]:
    return {"index": 0, "title": "Start", "exercise": [], "exam": [{"q": "1 + 1 = ?", "answer": "2"}]}


def _level(index: int, **overrides: object) -> dict[str, object]:
    raw: dict[str, object] = {
        "index": index,
        "title": f"Level {index}",
        "exercise": [[{"q": "2 + 2 = ?", "answer": "4"}], [{"q": "5 + 5 = ??", "answer": "10"}]],
        "exam": [{"q": "3 + 3 = ?", "answer": "6"}],
    }
    raw.update(overrides)
    return raw


def test_load_levels_from_dir_keeps_groups(tmp_path: Path) -> None:
    _write_levels(tmp_path, [_level(1), _entry_level()])
    levels = load_levels_from_dir(tmp_path)
    assert [level.index for level in levels] == [0, 1]
    groups = levels[1].exercise.full_questions()
    assert [[index for index, _ in group] for group in groups] == [[0], [1]]
    assert levels[1].exercise.questions[1].correct_inputs == ("1", "0")


def test_missing_level_index_raises(tmp_path: Path) -> None:
    _write_levels(tmp_path, [_entry_level(), _level(2)])
    with pytest.raises(ValueError, match="contiguous"):
        load_levels_from_dir(tmp_path)


def test_duplicate_level_index_raises(tmp_path: Path) -> None:
    _write_levels(tmp_path, [_entry_level(), _level(1)])
    (tmp_path / "copy.json").write_text(json.dumps(_level(1)), encoding="utf-8")
    with pytest.raises(ValueError, match="Duplicate level index"):
        load_levels_from_dir(tmp_path)


def test_answer_must_match_blanks(tmp_path: Path) -> None:
    _write_levels(tmp_path, [_entry_level(), _level(1, exam=[{"q": "3 + 3 = ??", "answer": "6"}])])
    with pytest.raises(ValueError, match="does not match"):
        load_levels_from_dir(tmp_path)


def test_answer_keys_must_be_typeable(tmp_path: Path) -> None:
    _write_levels(tmp_path, [_entry_level(), _level(1, exam=[{"q": "3 + 3 = ?", "answer": "A"}])])
    with pytest.raises(ValueError, match="unsupported keys"):
        load_levels_from_dir(tmp_path)


def test_entry_level_must_not_have_exercises(tmp_path: Path) -> None:
    entry = _entry_level()
    entry["exercise"] = [[{"q": "1 + 1 = ?", "answer": "2"}]]
    _write_levels(tmp_path, [entry])
    with pytest.raises(ValueError, match="Level 0"):
        load_levels_from_dir(tmp_path)


def test_later_levels_need_exercises_and_exams(tmp_path: Path) -> None:
    _write_levels(tmp_path, [_entry_level(), _level(1, exercise=[])])
    with pytest.raises(ValueError, match="no exercises"):
        load_levels_from_dir(tmp_path)

    _write_levels(tmp_path, [_entry_level(), _level(1, exam=[])])
    with pytest.raises(ValueError, match="no exam questions"):
        load_levels_from_dir(tmp_path)


def test_empty_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="No levels"):
        load_levels_from_dir(tmp_path)
