"""Pytest configuration and fixtures."""
import sqlite3

import pytest


@pytest.fixture
def chat_db(tmp_path):
    """Minimal chat.db with the two tables the daemon reads.

    Returns (path, add_message) where add_message(text, handle, date, from_me=0)
    inserts a row and returns its ROWID.
    """
    path = tmp_path / "chat.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE handle (ROWID INTEGER PRIMARY KEY AUTOINCREMENT, id TEXT NOT NULL);
        CREATE TABLE message (
          ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
          text TEXT,
          handle_id INTEGER DEFAULT 0,
          date INTEGER,
          is_from_me INTEGER DEFAULT 0
        );
        """
    )
    conn.commit()

    def add_message(text, handle, date, from_me=0):
        handle_rowid = 0
        if handle is not None:
            row = conn.execute("SELECT ROWID FROM handle WHERE id=?", (handle,)).fetchone()
            if row:
                handle_rowid = row[0]
            else:
                handle_rowid = conn.execute("INSERT INTO handle(id) VALUES (?)", (handle,)).lastrowid
        rowid = conn.execute(
            "INSERT INTO message(text, handle_id, date, is_from_me) VALUES (?,?,?,?)",
            (text, handle_rowid, date, from_me),
        ).lastrowid
        conn.commit()
        return rowid

    yield path, add_message
    conn.close()
