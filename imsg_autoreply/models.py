from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# chat.db counts from 2001-01-01 UTC
APPLE_EPOCH_OFFSET = 978307200
# Values above this are nanoseconds (macOS 10.13+), below are seconds.
NANOSECOND_THRESHOLD = 10**11


def apple_time_to_unix(value: int) -> float:
    """Convert a chat.db `message.date` value to Unix seconds."""
    seconds = value / 1_000_000_000 if abs(value) > NANOSECOND_THRESHOLD else float(value)
    return seconds + APPLE_EPOCH_OFFSET


@dataclass(frozen=True)
class Message:
    id: int
    text: str | None
    sender_handle: str | None
    timestamp: int

    @property
    def unix_time(self) -> float:
        return apple_time_to_unix(self.timestamp)


@dataclass
class ThrottleState:
    """Time of the last successful reply, shared by every recipient."""

    last_successful_reply_at: float | None = None


class Action(str, Enum):
    SKIP_STALE = "skip-stale"
    SKIP_UNMATCHED = "skip-unmatched"
    SKIP_THROTTLED = "skip-throttled"
    RESPOND = "respond"


@dataclass(frozen=True)
class Verdict:
    action: Action
    text: str | None = None

    @property
    def responds(self) -> bool:
        return self.action is Action.RESPOND
