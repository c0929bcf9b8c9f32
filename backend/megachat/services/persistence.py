"""
Persistence adapters for conversation logs, plus the debounced save queue.
"""

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import Callable, Dict, List, Optional, Protocol, Sequence
import asyncio
import logging

from ..exceptions import PersistenceError
from ..models.snapshot import ConversationSnapshot
from ..schemas.message import Message

logger = logging.getLogger(__name__)

_LOG_ADAPTER = TypeAdapter(List[Message])


def serialize_log(messages: Sequence[Message]) -> str:
    """Encode the log as a JSON array of message records."""
    return _LOG_ADAPTER.dump_json(list(messages)).decode("utf-8")


def deserialize_log(payload: str) -> List[Message]:
    """Decode a JSON array of message records."""
    try:
        return _LOG_ADAPTER.validate_json(payload)
    except ValidationError as e:
        raise PersistenceError(f"Corrupt conversation payload: {e.error_count()} errors") from e


class PersistenceAdapter(Protocol):
    """Key-value boundary for serialized conversation logs."""

    async def load(self, conversation_id: str) -> Optional[str]:
        ...

    async def save(self, conversation_id: str, payload: str) -> None:
        ...


class MemoryPersistence:
    """Keeps payloads in a dict. Used by tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.saves = 0

    async def load(self, conversation_id: str) -> Optional[str]:
        return self.data.get(conversation_id)

    async def save(self, conversation_id: str, payload: str) -> None:
        self.data[conversation_id] = payload
        self.saves += 1


class SQLitePersistence:
    """Stores one snapshot row per conversation through async SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def load(self, conversation_id: str) -> Optional[str]:
        try:
            async with self.session_factory() as session:
                snapshot = await session.get(ConversationSnapshot, conversation_id)
                return snapshot.payload if snapshot else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load conversation {conversation_id}") from e

    async def save(self, conversation_id: str, payload: str) -> None:
        try:
            async with self.session_factory() as session:
                snapshot = await session.get(ConversationSnapshot, conversation_id)
                if snapshot is None:
                    session.add(ConversationSnapshot(
                        conversation_id=conversation_id,
                        payload=payload,
                        revision=1
                    ))
                else:
                    snapshot.payload = payload
                    snapshot.revision = (snapshot.revision or 0) + 1
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save conversation {conversation_id}") from e


class SaveQueue:
    """
    Debounces saves of one conversation.

    Every write serializes the log as it is at write time and writes run one
    at a time, so an older state can never land after a newer one.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        conversation_id: str,
        snapshot: Callable[[], str],
        debounce: float = 0.0
    ):
        self.adapter = adapter
        self.conversation_id = conversation_id
        self.snapshot = snapshot
        self.debounce = debounce
        self._lock = asyncio.Lock()
        self._dirty = False
        self._pending: Optional[asyncio.Task] = None

    @property
    def dirty(self) -> bool:
        return self._dirty

    def request(self):
        """Mark the log changed and make sure a write is scheduled."""
        self._dirty = True
        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(self._delayed_write())

    async def _delayed_write(self):
        # Requests that arrive while a write is in flight are picked up by the next pass
        while self._dirty:
            if self.debounce > 0:
                await asyncio.sleep(self.debounce)
            if not await self._write():
                break

    async def _write(self) -> bool:
        async with self._lock:
            if not self._dirty:
                return True
            self._dirty = False
            payload = self.snapshot()
            try:
                await self.adapter.save(self.conversation_id, payload)
            except PersistenceError:
                # Retried on the next mutation or flush
                self._dirty = True
                logger.exception("Saving conversation %s failed", self.conversation_id)
                return False
            except asyncio.CancelledError:
                self._dirty = True
                raise
            return True

    async def flush(self):
        """Write any unsaved state now."""
        pending = self._pending
        if pending is not None and not pending.done():
            pending.cancel()
            try:
                await pending
            except asyncio.CancelledError:
                pass
        # request() may have scheduled a new write while we waited
        if self._pending is pending:
            self._pending = None
        await self._write()
