"""
Message id allocation.
"""

import itertools
import secrets
import threading


class MessageIdGenerator:
    """
    Allocates message ids that are unique and strictly increasing.

    Ids are "<counter>-<salt>": the zero-padded counter orders them by
    allocation, the random salt keeps ids from separate processes apart.
    """

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._salt = secrets.token_hex(4)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{value:012d}-{self._salt}"

    def advance_past(self, message_id: str):
        """Make sure later ids sort after an id loaded from storage."""
        head = message_id.split("-", 1)[0]
        if not head.isdigit():
            return
        with self._lock:
            current = next(self._counter)
            self._counter = itertools.count(max(current, int(head) + 1))


# Process-wide generator shared by every conversation
message_ids = MessageIdGenerator()
