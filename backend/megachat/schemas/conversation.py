"""
Conversation-related Pydantic schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Union, Any, Annotated

from .message import Message


# ============= Composer Modes =============

class Viewing(BaseModel):
    """No composition context is active."""
    model_config = {"frozen": True}
    kind: Literal["viewing"] = "viewing"


class Editing(BaseModel):
    """The composer is rewriting an existing message."""
    model_config = {"frozen": True}
    kind: Literal["editing"] = "editing"
    message_id: str


class Replying(BaseModel):
    """The next sent message quotes an existing message."""
    model_config = {"frozen": True}
    kind: Literal["replying"] = "replying"
    message_id: str


class Searching(BaseModel):
    """The log is displayed filtered by a query."""
    model_config = {"frozen": True}
    kind: Literal["searching"] = "searching"
    query: str


ComposerMode = Annotated[
    Union[Viewing, Editing, Replying, Searching],
    Field(discriminator="kind")
]


# ============= Request Schemas =============

class GroupCreate(BaseModel):
    """Schema for creating a group."""
    name: str = Field(..., min_length=1, max_length=200)
    member_ids: List[str] = Field(..., min_length=1)


class SearchUpdate(BaseModel):
    """Schema for entering or leaving search mode."""
    query: str = ""


# ============= Response Schemas =============

class ConversationState(BaseModel):
    """Full conversation view: log, composer mode and responder flag."""
    conversation_id: str
    messages: List[Message]
    mode: ComposerMode
    is_responding: bool


class ExportResponse(BaseModel):
    """Exported conversation."""
    format: str
    content: Any


class SearchResponse(BaseModel):
    """Search result projection."""
    query: Optional[str] = None
    messages: List[Message]
