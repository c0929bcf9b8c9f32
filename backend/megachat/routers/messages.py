"""
Message routes: sending and per-message interactions.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_store, invalid, not_found
from ..exceptions import InvalidMessageError, MessageNotFoundError
from ..schemas.conversation import ConversationState
from ..schemas.message import (
    AttachmentSendRequest,
    EditMessageRequest,
    Message,
    ReactionRequest,
    SendMessageRequest,
    VoiceSendRequest
)
from ..services.conversation_store import ConversationStore


router = APIRouter(prefix="/api/conversations/{conversation_id}/messages", tags=["Messages"])


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    store: ConversationStore = Depends(get_store)
):
    """Send a message. The assistant reply arrives asynchronously."""
    try:
        return store.send(request.text, attachment=request.attachment, reply_to_id=request.reply_to_id)
    except MessageNotFoundError as e:
        raise not_found(e)
    except InvalidMessageError as e:
        raise invalid(e)


@router.post("/attachments", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_attachment(
    request: AttachmentSendRequest,
    store: ConversationStore = Depends(get_store)
):
    """Send an attachment picked from gallery, camera, file picker and so on."""
    return store.send_attachment(request.source, url=request.url, label=request.label)


@router.post("/voice", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_voice(
    request: VoiceSendRequest,
    store: ConversationStore = Depends(get_store)
):
    """Send a recorded voice note."""
    return store.send_voice(request.duration_seconds, url=request.url)


@router.put("/{message_id}", response_model=Message)
async def edit_message(
    message_id: str,
    request: EditMessageRequest,
    store: ConversationStore = Depends(get_store)
):
    """Replace the text of a message."""
    try:
        return store.edit(message_id, request.text)
    except MessageNotFoundError as e:
        raise not_found(e)
    except InvalidMessageError as e:
        raise invalid(e)


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    store: ConversationStore = Depends(get_store)
):
    """Delete a message permanently."""
    try:
        store.delete(message_id)
    except MessageNotFoundError as e:
        raise not_found(e)

    return {"message": "Message deleted"}


@router.post("/{message_id}/reactions", response_model=Message)
async def toggle_reaction(
    message_id: str,
    request: ReactionRequest,
    store: ConversationStore = Depends(get_store)
):
    """Add the actor's reaction, or remove it if already present."""
    try:
        return store.toggle_reaction(message_id, request.symbol, request.actor_id)
    except MessageNotFoundError as e:
        raise not_found(e)


@router.post("/{message_id}/star", response_model=Message)
async def toggle_star(
    message_id: str,
    store: ConversationStore = Depends(get_store)
):
    """Star or unstar a message."""
    try:
        return store.toggle_star(message_id)
    except MessageNotFoundError as e:
        raise not_found(e)


@router.post("/{message_id}/forward", response_model=Message, status_code=status.HTTP_201_CREATED)
async def forward_message(
    message_id: str,
    store: ConversationStore = Depends(get_store)
):
    """Forward a message as a new outgoing message."""
    try:
        return store.forward(message_id)
    except MessageNotFoundError as e:
        raise not_found(e)


@router.post("/{message_id}/reply", response_model=ConversationState)
async def begin_reply(
    message_id: str,
    store: ConversationStore = Depends(get_store)
):
    """Quote this message in the next sent message."""
    try:
        store.begin_reply(message_id)
    except MessageNotFoundError as e:
        raise not_found(e)

    return store.state()


@router.post("/{message_id}/edit-mode", response_model=ConversationState)
async def begin_edit(
    message_id: str,
    store: ConversationStore = Depends(get_store)
):
    """Start editing this message."""
    try:
        store.begin_edit(message_id)
    except MessageNotFoundError as e:
        raise not_found(e)

    return store.state()
