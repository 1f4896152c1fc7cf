"""The polling loop: gate -> fetch -> decide -> send -> persist cursor."""
from __future__ import annotations

import logging
import time
from typing import Callable, Mapping, Protocol

from .models import Action, Message, ThrottleState, Verdict
from .policy import decide

LOG = logging.getLogger(__name__)


class Source(Protocol):
    def fetch_since(self, cursor: int) -> list[Message]: ...
    def latest_id(self) -> int: ...


class Store(Protocol):
    def load(self) -> int: ...
    def store(self, rowid: int) -> None: ...


class Gate(Protocol):
    def is_active(self) -> bool: ...


class Actuator(Protocol):
    def send(self, handle: str, text: str) -> bool: ...


class AutoResponder:
    """Single-threaded auto-reply loop.

    The cursor is written after every message, whatever the verdict, so a
    crash mid-batch never replays a message that was already handled.
    Throttle state lives only in memory and starts empty on each run.
    """

    def __init__(
        self,
        source: Source,
        cursor_store: Store,
        gate: Gate,
        actuator: Actuator,
        replies: Mapping[str, str],
        *,
        max_message_age: float = 60,
        throttle_window: float = 1800,
        poll_interval: float = 2.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.source = source
        self.cursor_store = cursor_store
        self.gate = gate
        self.actuator = actuator
        self.replies = dict(replies)
        self.max_message_age = max_message_age
        self.throttle_window = throttle_window
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

        self.throttle = ThrottleState()
        self.cursor: int | None = None
        self._was_active: bool | None = None

    def bootstrap(self) -> int:
        """Load the cursor; on first run skip all existing history."""
        cursor = self.cursor_store.load()
        if cursor == 0:
            cursor = self.source.latest_id()
            LOG.info("First run: starting at current max ROWID %d (no history).", cursor)
            self.cursor_store.store(cursor)
        self.cursor = cursor
        return cursor

    def _check_gate(self) -> bool:
        try:
            active = self.gate.is_active()
        except OSError as e:
            LOG.error("Could not check activation flag: %s", e)
            active = False
        if active != self._was_active:
            LOG.info("Auto-reply %s", "enabled" if active else "disabled (waiting for flag)")
            self._was_active = active
        return active

    def _advance(self, rowid: int) -> None:
        if self.cursor is None or rowid > self.cursor:
            self.cursor = rowid
        self.cursor_store.store(self.cursor)

    def handle(self, message: Message) -> Verdict:
        now = self.clock()
        verdict = decide(
            message,
            now,
            self.throttle,
            self.replies,
            self.max_message_age,
            self.throttle_window,
        )
        sender = message.sender_handle or "unknown"

        if verdict.action is Action.SKIP_STALE:
            LOG.info("Ignored old message %d from %s", message.id, sender)
        elif verdict.action is Action.SKIP_UNMATCHED:
            LOG.info("Ignored message %d from %s", message.id, sender)
        elif verdict.action is Action.SKIP_THROTTLED:
            LOG.info("Skipped reply to %s (throttled).", sender)
        elif verdict.responds:
            ok = self.actuator.send(message.sender_handle, verdict.text)
            LOG.info("Replied to %s: success=%s - message=%r", sender, ok, message.text or "")
            if ok:
                self.throttle.last_successful_reply_at = now

        self._advance(message.id)
        return verdict

    def poll_once(self) -> list[tuple[Message, Verdict]]:
        """One iteration without the trailing sleep."""
        if self.cursor is None:
            self.bootstrap()
        if not self._check_gate():
            return []

        handled = []
        for message in self.source.fetch_since(self.cursor):
            handled.append((message, self.handle(message)))
        return handled

    def run(self, max_iterations: int | None = None) -> None:
        """Poll forever (or `max_iterations` times)."""
        if self.cursor is None:
            self.bootstrap()
        LOG.info("Watching contacts: %s", ", ".join(self.replies) or "(none)")

        iterations = 0
        while max_iterations is None or iterations < max_iterations:
            self.poll_once()
            iterations += 1
            self.sleep(self.poll_interval)
