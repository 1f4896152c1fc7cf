"""Reply decision for a single inbound message."""
from __future__ import annotations

from typing import Mapping

from .models import Action, Message, ThrottleState, Verdict


def decide(
    message: Message,
    now: float,
    throttle: ThrottleState,
    replies: Mapping[str, str],
    max_message_age: float,
    throttle_window: float,
) -> Verdict:
    """Decide what to do with `message`. First matching rule wins.

    1. stale     - older than `max_message_age` seconds
    2. unmatched - no sender handle, or handle not in `replies`
    3. throttled - last successful reply (to anyone) within `throttle_window`
    4. respond   - with the configured text for the sender

    `throttle` is read, never written; the caller records successful sends.
    """
    if now - message.unix_time > max_message_age:
        return Verdict(Action.SKIP_STALE)

    handle = message.sender_handle
    if handle is None or handle not in replies:
        return Verdict(Action.SKIP_UNMATCHED)

    last = throttle.last_successful_reply_at
    if last is not None and now - last <= throttle_window:
        return Verdict(Action.SKIP_THROTTLED)

    return Verdict(Action.RESPOND, replies[handle])
