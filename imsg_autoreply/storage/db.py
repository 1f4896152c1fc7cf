from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..models import Message

LOG = logging.getLogger(__name__)

# Inbound only: without `is_from_me = 0` our own auto-replies would be read
# back as new messages and answered again.
FETCH_SINCE_SQL = """
    SELECT message.ROWID AS rowid, message.text AS text, handle.id AS handle, message.date AS date
    FROM message
    LEFT JOIN handle ON message.handle_id = handle.ROWID
    WHERE message.is_from_me = 0 AND message.ROWID > ?
    ORDER BY message.ROWID ASC
"""

LATEST_ID_SQL = "SELECT MAX(ROWID) FROM message"


class StoreUnavailable(Exception):
    """The Messages database is missing or cannot be opened."""


def open_messages_db(path: Path) -> sqlite3.Connection:
    """Open chat.db read-only, failing fast if it is not usable."""
    path = Path(path).expanduser()
    if not path.exists():
        raise StoreUnavailable(f"Messages DB not found at {path}.")

    uri = path.resolve().as_uri() + "?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row
        # Without Full Disk Access the file exists but every read fails.
        conn.execute("SELECT 1 FROM message LIMIT 1").fetchall()
    except sqlite3.Error as e:
        raise StoreUnavailable(
            f"Failed to open {path} ({e}) - check Full Disk Access in System Settings."
        ) from e
    return conn


class MessageSource:
    """Inbound messages from chat.db, in ROWID order."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @classmethod
    def open(cls, path: Path) -> "MessageSource":
        return cls(open_messages_db(path))

    def fetch_since(self, cursor: int) -> list[Message]:
        """Messages from other people with ROWID > cursor, oldest first."""
        try:
            rows = self.conn.execute(FETCH_SINCE_SQL, (int(cursor),)).fetchall()
        except sqlite3.Error as e:
            LOG.error("SQL error while fetching messages after %d: %s", cursor, e)
            return []

        return [
            Message(
                id=int(r["rowid"]),
                text=r["text"],
                sender_handle=r["handle"],
                timestamp=int(r["date"] or 0),
            )
            for r in rows
        ]

    def latest_id(self) -> int:
        try:
            row = self.conn.execute(LATEST_ID_SQL).fetchone()
        except sqlite3.Error as e:
            LOG.error("SQL error while reading latest ROWID: %s", e)
            return 0
        if not row or row[0] is None:
            return 0
        return int(row[0])

    def close(self) -> None:
        self.conn.close()
