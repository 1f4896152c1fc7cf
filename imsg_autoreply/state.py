"""Persistent cursor: the highest chat.db ROWID already handled."""
from __future__ import annotations

import logging
import os
from pathlib import Path

LOG = logging.getLogger(__name__)


class CursorStore:
    """Plain-text cursor file, replaced atomically on every write."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> int:
        """Return the stored cursor, or 0 when missing or unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return 0
        except OSError as e:
            LOG.error("Could not read cursor file %s: %s", self.path, e)
            return 0
        try:
            value = int(raw)
        except ValueError:
            LOG.warning("Ignoring malformed cursor file %s: %r", self.path, raw[:40])
            return 0
        return value if value > 0 else 0

    def store(self, rowid: int) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(f"{int(rowid)}\n", encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            LOG.error("Could not persist cursor %d to %s: %s", rowid, self.path, e)
