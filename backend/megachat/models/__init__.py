"""
Database models package.
"""

from .snapshot import ConversationSnapshot

__all__ = ["ConversationSnapshot"]
