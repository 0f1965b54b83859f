import sqlite3
from pathlib import Path

import pytest

from everest.progress import AnswerRecord, ProgressStore, open_store


def test_migration_sets_user_version_and_schema_history() -> None:
    store = ProgressStore(":memory:")
    version = int(store._conn.execute("PRAGMA user_version").fetchone()[0])  # noqa: SLF001
    assert version == 1
    rows = store._conn.execute("SELECT version FROM schema_migrations ORDER BY version").fetchall()  # noqa: SLF001
    assert [int(row["version"]) for row in rows] == [1]


def test_key_values_upsert() -> None:
    store = ProgressStore(":memory:")
    assert store.get_value("settings:themeMode") is None
    store.put_value("settings:themeMode", "a")
    store.put_value("settings:themeMode", "b")
    assert store.get_value("settings:themeMode") == "b"


def test_answers_upsert_and_delete() -> None:
    store = ProgressStore(":memory:")
    store.put_answer(AnswerRecord(id="1:exam:0", level="1", question="2 + 2 = ?", inputs="[null]"))
    store.put_answer(AnswerRecord(id="1:exam:0", level="1", question="2 + 2 = ?", inputs='["4"]'))
    store.put_answer(AnswerRecord(id="0:exam:0", level="0", question="1 + 1 = ?", inputs='["2"]'))

    records = store.list_answers()
    assert [record.id for record in records] == ["0:exam:0", "1:exam:0"]
    assert records[1].inputs == '["4"]'

    assert store.delete_answers() == 2
    assert store.list_answers() == []


def test_path_database_creation(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "everest-data.db"
    store = ProgressStore(db_path)
    store.put_value("k", "v")
    store.close()
    assert db_path.exists()
    assert ProgressStore(db_path).get_value("k") == "v"


def test_newer_schema_is_rejected(tmp_path: Path) -> None:
    db_path = tmp_path / "future.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA user_version = 9")
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(RuntimeError, match="newer than supported"):
        ProgressStore(db_path)
    assert open_store(db_path) is None


def test_open_store_without_path_runs_in_memory_only() -> None:
    assert open_store(None) is None


def test_open_store_on_unusable_path(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    assert open_store(blocker / "everest-data.db") is None


def test_open_store_returns_working_store() -> None:
    store = open_store(":memory:")
    assert store is not None
    store.put_value("k", "v")
    assert store.get_value("k") == "v"
