"""
Conversation routes: state, views and conversation-level actions.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_store, invalid
from ..exceptions import InvalidMessageError
from ..schemas.conversation import (
    ConversationState,
    ExportResponse,
    GroupCreate,
    SearchResponse,
    SearchUpdate
)
from ..schemas.message import Message
from ..services.conversation_store import ConversationStore
from ..services.export import export_conversation


router = APIRouter(prefix="/api/conversations", tags=["Conversations"])


@router.get("/{conversation_id}", response_model=ConversationState)
async def get_conversation(store: ConversationStore = Depends(get_store)):
    """Get the visible log, the composer mode and the responding flag."""
    return store.state()


@router.get("/{conversation_id}/search", response_model=SearchResponse)
async def search_messages(
    q: str = "",
    store: ConversationStore = Depends(get_store)
):
    """Search message text and sender names without changing the log."""
    return SearchResponse(query=q or None, messages=store.search(q))


@router.put("/{conversation_id}/search", response_model=ConversationState)
async def set_search(
    update: SearchUpdate,
    store: ConversationStore = Depends(get_store)
):
    """Enter search mode with a query, or leave it with an empty one."""
    store.set_search(update.query)
    return store.state()


@router.get("/{conversation_id}/starred", response_model=SearchResponse)
async def starred_messages(store: ConversationStore = Depends(get_store)):
    """List starred messages."""
    return SearchResponse(messages=store.starred())


@router.post("/{conversation_id}/composer/cancel", response_model=ConversationState)
async def cancel_composer(store: ConversationStore = Depends(get_store)):
    """Leave edit, reply or search mode."""
    store.cancel_composer()
    return store.state()


@router.post("/{conversation_id}/clear", response_model=ConversationState)
async def clear_conversation(store: ConversationStore = Depends(get_store)):
    """Remove every message and drop pending status updates and replies."""
    store.clear()
    return store.state()


@router.post("/{conversation_id}/groups", response_model=Message, status_code=status.HTTP_201_CREATED)
async def create_group(
    group: GroupCreate,
    store: ConversationStore = Depends(get_store)
):
    """Create a group and log it as a system message."""
    try:
        return store.create_group(group.name, group.member_ids)
    except InvalidMessageError as e:
        raise invalid(e)


@router.get("/{conversation_id}/export", response_model=ExportResponse)
async def export(
    conversation_id: str,
    format: str = "markdown",
    store: ConversationStore = Depends(get_store)
):
    """Export a conversation to markdown or JSON."""
    return export_conversation(conversation_id, store.messages, format=format)
