"""
FastAPI dependencies shared by the routers.
"""

from fastapi import Depends, HTTPException, Request, status

from .exceptions import InvalidMessageError, MessageNotFoundError, PersistenceError
from .services.conversation_store import ConversationStore
from .services.manager import ConversationManager


def get_manager(request: Request) -> ConversationManager:
    """Conversation manager created in the application lifespan."""
    return request.app.state.conversations


async def get_store(
    conversation_id: str,
    manager: ConversationManager = Depends(get_manager)
) -> ConversationStore:
    """Open (or reuse) the store of the conversation named in the path."""
    try:
        return await manager.get(conversation_id)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )


def not_found(error: MessageNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=str(error)
    )


def invalid(error: InvalidMessageError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=str(error)
    )
