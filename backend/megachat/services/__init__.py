"""
Services package.
"""

from .conversation_store import ConversationStore
from .manager import ConversationManager
from .persistence import MemoryPersistence, SQLitePersistence, SaveQueue
from .responder import LLMResponder, Responder, ResponderTurn
from .tasks import TaskRegistry

__all__ = [
    "ConversationStore",
    "ConversationManager",
    "MemoryPersistence",
    "SQLitePersistence",
    "SaveQueue",
    "LLMResponder",
    "Responder",
    "ResponderTurn",
    "TaskRegistry"
]
