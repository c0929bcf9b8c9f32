"""
MegaChat - Main FastAPI Application
Chat backend holding conversation logs and the AI assistant replies.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Any, Optional
import logging

from .config import settings
from .database import close_db, create_engine, create_session_factory, init_db
from .routers import conversations_router, messages_router
from .services.manager import ConversationManager
from .services.persistence import PersistenceAdapter, SQLitePersistence
from .services.responder import LLMResponder, Responder
from .utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    persistence: Optional[PersistenceAdapter] = None,
    responder: Optional[Responder] = None,
    **store_options: Any
) -> FastAPI:
    """
    Build the application.

    Without a persistence adapter the conversations are stored in the
    configured SQLite database; without a responder the LLM backend from
    settings answers.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        setup_logging()
        engine = None
        adapter = persistence
        if adapter is None:
            engine = create_engine()
            await init_db(engine)
            adapter = SQLitePersistence(create_session_factory(engine))

        app.state.conversations = ConversationManager(
            adapter,
            responder if responder is not None else LLMResponder(),
            **store_options
        )
        logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)

        yield

        # Shutdown
        await app.state.conversations.close()
        if engine is not None:
            await close_db(engine)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Chat backend with message status tracking, reactions, replies and an AI assistant",
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify exact origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(conversations_router)
    app.include_router(messages_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION
        }

    @app.get("/api")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "endpoints": {
                "conversations": "/api/conversations/{conversation_id}",
                "messages": "/api/conversations/{conversation_id}/messages"
            }
        }

    return app


app = create_app()
