"""
Process-wide registry of open conversation stores.
"""

from typing import Any, Dict, Optional
import asyncio
import logging

from ..exceptions import PersistenceError
from .conversation_store import ConversationStore
from .persistence import PersistenceAdapter
from .responder import Responder

logger = logging.getLogger(__name__)


class ConversationManager:
    """Opens each conversation once and keeps its store alive until shutdown."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        responder: Optional[Responder] = None,
        **store_options: Any
    ):
        self.persistence = persistence
        self.responder = responder
        self.store_options = store_options
        self._stores: Dict[str, ConversationStore] = {}
        self._lock = asyncio.Lock()

    async def get(self, conversation_id: str) -> ConversationStore:
        """Return the store for conversation_id, loading it on first use."""
        store = self._stores.get(conversation_id)
        if store is not None:
            return store

        async with self._lock:
            store = self._stores.get(conversation_id)
            if store is None:
                try:
                    store = await ConversationStore.open(
                        conversation_id,
                        self.persistence,
                        self.responder,
                        **self.store_options
                    )
                except PersistenceError:
                    # Not cached, the next request retries the load
                    logger.warning("Could not load conversation %s", conversation_id)
                    raise
                self._stores[conversation_id] = store
                logger.info("Opened conversation %s with %d messages", conversation_id, len(store))
        return store

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._stores

    async def close(self):
        """Cancel every store's tasks and flush unsaved logs."""
        for conversation_id, store in list(self._stores.items()):
            await store.close()
            logger.info("Closed conversation %s", conversation_id)
        self._stores.clear()
