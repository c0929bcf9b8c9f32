"""
Error types raised by the conversation core.
"""


class ChatError(Exception):
    """Base class for all conversation errors."""


class MessageNotFoundError(ChatError, KeyError):
    """Operation targeted a message id that is not in the log."""

    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(message_id)

    def __str__(self) -> str:
        return f"Message not found: {self.message_id}"


class InvalidMessageError(ChatError, ValueError):
    """Message content or operation arguments were rejected."""


class ResponderError(ChatError):
    """The responder backend failed or timed out."""


class PersistenceError(ChatError):
    """Loading or saving a conversation log failed."""
