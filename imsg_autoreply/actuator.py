"""Send replies through Messages.app via osascript."""
from __future__ import annotations

import logging
import subprocess

LOG = logging.getLogger(__name__)

OSASCRIPT = "/usr/bin/osascript"


def applescript_quote(value: str) -> str:
    """Escape a value for use inside an AppleScript string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_send_script(handle: str, text: str, service_type: str = "iMessage") -> str:
    """AppleScript that messages `handle`.

    Tries the buddy on the first service of `service_type`; if that lookup
    fails, sends to the first existing chat whose id contains the handle.
    """
    safe_handle = applescript_quote(handle)
    safe_text = applescript_quote(text)
    return f"""tell application "Messages"
    set targetService to 1st service whose service type = {service_type}
    try
        set theBuddy to buddy "{safe_handle}" of targetService
        send "{safe_text}" to theBuddy
    on error
        set theChats to (chats whose id contains "{safe_handle}")
        if (count of theChats) > 0 then
            send "{safe_text}" to item 1 of theChats
        else
            error "no buddy or chat for {safe_handle}"
        end if
    end try
end tell
"""


class OsascriptActuator:
    """One attempt per call: no retry, no queue."""

    def __init__(self, osascript: str = OSASCRIPT, service_type: str = "iMessage", timeout: float = 30):
        self.osascript = osascript
        self.service_type = service_type
        self.timeout = timeout

    def send(self, handle: str, text: str) -> bool:
        script = build_send_script(handle, text, self.service_type)
        try:
            result = subprocess.run(
                [self.osascript, "-"],
                input=script,
                capture_output=True, text=True, timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            LOG.error("osascript timed out after %ss sending to %s", self.timeout, handle)
            return False
        except OSError as e:
            LOG.error("AppleScript run error: %s", e)
            return False

        if result.returncode != 0:
            LOG.error(
                "osascript exited %d sending to %s: %s",
                result.returncode, handle, (result.stderr or "").strip(),
            )
            return False
        return True


class DryRunActuator:
    """Logs instead of sending; reports success so throttling still applies."""

    def send(self, handle: str, text: str) -> bool:
        LOG.info("[dry-run] would send to %s: %s", handle, text)
        return True
