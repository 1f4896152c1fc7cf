"""Activation gate: auto-replies only go out while the flag file exists."""
from __future__ import annotations

import logging
from pathlib import Path

LOG = logging.getLogger(__name__)


class FlagFileGate:
    def __init__(self, path: Path):
        self.path = Path(path)

    def is_active(self) -> bool:
        # Checked on every poll; contents are irrelevant.
        return self.path.exists()

    def enable(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        LOG.debug("Created activation flag %s", self.path)

    def disable(self) -> None:
        self.path.unlink(missing_ok=True)
        LOG.debug("Removed activation flag %s", self.path)
