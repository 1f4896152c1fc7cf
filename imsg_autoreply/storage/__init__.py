"""Read-only access to the Messages database (chat.db).

The daemon never writes to chat.db; all it needs is the inbound message
stream after a cursor and the current maximum ROWID.
"""

from .db import MessageSource, StoreUnavailable, open_messages_db  # noqa: F401
