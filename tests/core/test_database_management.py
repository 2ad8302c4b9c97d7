from __future__ import annotations

import sqlite3

import pytest

from migrator.core.managers.database_manager import DatabaseManager
from migrator.database_schema import ALL_TABLES


def test_init_schema_creates_all_tables(db_manager: DatabaseManager):
    rows = db_manager.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table'")
    names = {row["name"] for row in rows}
    assert set(ALL_TABLES) <= names


def test_init_schema_is_repeatable(db_manager: DatabaseManager):
    db_manager.init_schema()
    db_manager.init_schema()


def test_execute_insert_returns_row_id(db_manager: DatabaseManager):
    first = db_manager.execute_insert("INSERT INTO widgets (widget_key, widget_html) VALUES (?, ?)", ("{{widget-1}}", "<p/>"))
    second = db_manager.execute_insert("INSERT INTO widgets (widget_key, widget_html) VALUES (?, ?)", ("{{widget-2}}", "<p/>"))
    assert second == first + 1


def test_fetch_one_returns_mapping_rows(db_manager: DatabaseManager):
    db_manager.execute_insert("INSERT INTO placeholder_html (html_content, total_placeholders) VALUES (?, ?)", ("<div/>", 0))
    row = db_manager.fetch_one("SELECT * FROM placeholder_html")
    assert row["html_content"] == "<div/>"
    assert row["created_at"] is not None
    assert db_manager.fetch_one("SELECT * FROM placeholder_html WHERE id = ?", (999,)) is None


def test_write_failures_are_raised(db_manager: DatabaseManager):
    with pytest.raises(sqlite3.IntegrityError):
        db_manager.execute_insert("INSERT INTO widgets (widget_key, widget_html) VALUES (?, ?)", (None, "<p/>"))


def test_foreign_keys_are_enforced(db_manager: DatabaseManager):
    with pytest.raises(sqlite3.IntegrityError):
        db_manager.execute_insert(
            "INSERT INTO optimized_components (component_id, original_html, optimized_html) VALUES (?, ?, ?)",
            (12345, "<p/>", "<p/>"),
        )


def test_clear_tables(db_manager: DatabaseManager):
    db_manager.execute_insert("INSERT INTO widgets (widget_key, widget_html) VALUES (?, ?)", ("{{widget-1}}", "<p/>"))
    db_manager.clear_tables(["widgets"])
    assert db_manager.fetch_one("SELECT COUNT(*) AS n FROM widgets")["n"] == 0


def test_close_and_reconnect(tmp_path):
    with DatabaseManager(tmp_path / "nested" / "reopen.db") as manager:
        manager.init_schema()
        manager.execute_insert("INSERT INTO widgets (widget_key, widget_html) VALUES (?, ?)", ("{{widget-1}}", "<p/>"))
    assert (tmp_path / "nested" / "reopen.db").exists()

    # A closed manager transparently reconnects on the next call
    assert len(manager.fetch_all("SELECT * FROM widgets")) == 1
    manager.close()
    manager.close()
