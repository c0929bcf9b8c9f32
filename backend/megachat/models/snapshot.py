"""
Conversation snapshot database model.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func

from ..database import Base


class ConversationSnapshot(Base):
    """Serialized message log of one conversation, keyed by conversation id."""

    __tablename__ = "conversation_snapshots"

    conversation_id = Column(String(100), primary_key=True)

    # JSON array of message records
    payload = Column(Text, nullable=False)

    # Incremented on every save
    revision = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
