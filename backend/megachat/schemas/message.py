"""
Message-related Pydantic schemas.
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List, Dict, Set
from datetime import datetime, timezone
from enum import Enum


class Sender(str, Enum):
    """Message author role."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageStatus(str, Enum):
    """Delivery status of a user-authored message, in progression order."""
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [MessageStatus.SENT, MessageStatus.DELIVERED, MessageStatus.READ]


class AttachmentType(str, Enum):
    """Closed set of attachment kinds."""
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"
    DOCUMENT = "document"
    STICKER = "sticker"
    AUDIO = "audio"
    VOICE = "voice"
    LOCATION = "location"
    LIVE_LOCATION = "live_location"
    CONTACT = "contact"
    POLL = "poll"
    EVENT = "event"
    TEMPLATE = "template"
    RECORD = "record"


class AttachmentSource(str, Enum):
    """Intake collaborators that can hand over an attachment."""
    GALLERY = "gallery"
    CAMERA = "camera"
    DOCUMENT = "document"
    AUDIO = "audio"
    LOCATION = "location"
    LIVE_LOCATION = "live_location"
    CONTACT = "contact"
    POLL = "poll"
    EVENT = "event"
    TEMPLATE = "template"
    FILE = "file"


class Attachment(BaseModel):
    """Attachment handed over by an intake collaborator. The url is opaque."""
    type: AttachmentType
    url: str
    name: str
    size: Optional[str] = None
    mime_type: Optional[str] = None


class ReplyAttachment(BaseModel):
    """Attachment reference kept inside a reply snapshot."""
    type: AttachmentType
    url: str


class ReplySnapshot(BaseModel):
    """Copy of the quoted message taken when the reply was composed."""
    model_config = {"frozen": True}

    id: str
    text: str
    sender_name: str
    attachment: Optional[ReplyAttachment] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A single entry of the conversation log."""
    id: str
    text: str = ""
    sender: Sender
    sender_name: Optional[str] = None
    sender_avatar: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    status: Optional[MessageStatus] = None

    is_edited: bool = False
    is_starred: bool = False
    is_forwarded: bool = False
    is_system: bool = False

    reply_to: Optional[ReplySnapshot] = None
    attachment: Optional[Attachment] = None
    reactions: Dict[str, Set[str]] = Field(default_factory=dict)

    @field_serializer("reactions")
    def serialize_reactions(self, reactions: Dict[str, Set[str]]) -> Dict[str, List[str]]:
        return {symbol: sorted(actors) for symbol, actors in reactions.items()}

    def snapshot(self) -> ReplySnapshot:
        """Build a reply snapshot of this message as it reads right now."""
        attachment = None
        if self.attachment:
            attachment = ReplyAttachment(type=self.attachment.type, url=self.attachment.url)
        return ReplySnapshot(
            id=self.id,
            text=self.text,
            sender_name=self.sender_name or "Unknown",
            attachment=attachment
        )


# ============= Request Schemas =============

class SendMessageRequest(BaseModel):
    """Schema for sending a message."""
    text: str = ""
    attachment: Optional[Attachment] = None
    reply_to_id: Optional[str] = None


class EditMessageRequest(BaseModel):
    """Schema for editing a message."""
    text: str


class ReactionRequest(BaseModel):
    """Schema for toggling a reaction."""
    symbol: str = Field("❤️", min_length=1, max_length=16)
    actor_id: Optional[str] = None


class AttachmentSendRequest(BaseModel):
    """Schema for sending an attachment picked from an intake source."""
    source: AttachmentSource
    url: str = "#"
    label: Optional[str] = None


class VoiceSendRequest(BaseModel):
    """Schema for sending a recorded voice note."""
    duration_seconds: int = Field(..., ge=0)
    url: str = "#"
