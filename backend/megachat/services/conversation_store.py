"""
Conversation store: the ordered message log of one conversation and every
mutation the chat screen can perform on it.

All mutations are synchronous and run on the event loop thread. Status
timers and responder calls are tasks in the store's TaskRegistry, keyed by
the id of the message they act on, so deleting a message purges them.
"""

from datetime import datetime
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence
import asyncio
import logging

from ..config import settings
from ..exceptions import InvalidMessageError, MessageNotFoundError, PersistenceError
from ..schemas.conversation import ComposerMode, ConversationState, Editing, Replying, Searching, Viewing
from ..schemas.message import Attachment, AttachmentSource, Message, MessageStatus, Sender, utcnow
from ..utils.ids import MessageIdGenerator, message_ids
from .attachments import SOURCE_LABELS, attachment_from_source, voice_attachment
from .persistence import PersistenceAdapter, SaveQueue, deserialize_log, serialize_log
from .responder import Responder, ResponderTurn, build_history
from .tasks import TaskRegistry

logger = logging.getLogger(__name__)


class ConversationStore:
    """Owns the message log of one conversation and enforces its invariants."""

    def __init__(
        self,
        conversation_id: str,
        persistence: PersistenceAdapter,
        responder: Optional[Responder] = None,
        *,
        delivery_delay: Optional[float] = None,
        read_delay: Optional[float] = None,
        forward_delivery_delay: Optional[float] = None,
        history_limit: Optional[int] = None,
        save_debounce: Optional[float] = None,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        user_avatar: Optional[str] = None,
        id_generator: Optional[MessageIdGenerator] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.conversation_id = conversation_id
        self.persistence = persistence
        self.responder = responder

        self.delivery_delay = settings.DELIVERY_DELAY if delivery_delay is None else delivery_delay
        self.read_delay = settings.READ_DELAY if read_delay is None else read_delay
        self.forward_delivery_delay = (
            settings.FORWARD_DELIVERY_DELAY if forward_delivery_delay is None else forward_delivery_delay
        )
        if self.read_delay <= max(self.delivery_delay, self.forward_delivery_delay):
            raise ValueError("read_delay must be longer than both delivery delays")

        self.history_limit = settings.RESPONDER_HISTORY_LIMIT if history_limit is None else history_limit
        self.user_id = user_id or settings.DEFAULT_USER_ID
        self.user_name = user_name or settings.DEFAULT_USER_NAME
        self.user_avatar = user_avatar or settings.DEFAULT_USER_AVATAR

        self.ids = id_generator or message_ids
        self.clock = clock
        self.tasks = TaskRegistry()
        self.mode: ComposerMode = Viewing()

        self._messages: List[Message] = []
        self._index: Dict[str, Message] = {}
        self._replies: Dict[str, asyncio.Task] = {}
        self._saves = SaveQueue(
            persistence,
            conversation_id,
            self.serialize,
            debounce=settings.SAVE_DEBOUNCE if save_debounce is None else save_debounce
        )

    @classmethod
    async def open(
        cls,
        conversation_id: str,
        persistence: PersistenceAdapter,
        responder: Optional[Responder] = None,
        **options
    ) -> "ConversationStore":
        """Create a store and load its log from persistence."""
        store = cls(conversation_id, persistence, responder, **options)
        await store.load()
        return store

    # ============= Loading and Saving =============

    async def load(self):
        """
        Load the saved log, or seed a greeting if nothing usable is saved.

        A failing adapter raises PersistenceError. Only an unreadable payload
        falls back to the greeting.
        """
        messages: List[Message] = []
        payload = await self.persistence.load(self.conversation_id)
        if payload:
            try:
                messages = deserialize_log(payload)
            except PersistenceError:
                logger.exception("Saved log of conversation %s is unreadable, starting fresh", self.conversation_id)

        if not messages:
            messages = [self._seed_message()]

        self._messages = []
        self._index = {}
        for message in messages:
            if message.id in self._index:
                logger.warning("Dropping duplicate message id %s from saved log", message.id)
                continue
            self._messages.append(message)
            self._index[message.id] = message
            self.ids.advance_past(message.id)

        # Timers do not survive a restart, pick the progression up again
        for message in self._messages:
            if message.sender == Sender.USER and message.status != MessageStatus.READ:
                self._schedule_progression(message.id, self.delivery_delay)

    def _seed_message(self) -> Message:
        return Message(
            id=self.ids.next_id(),
            text=settings.GREETING_TEXT,
            sender=Sender.ASSISTANT,
            sender_name=settings.ASSISTANT_NAME,
            sender_avatar=settings.ASSISTANT_AVATAR,
            timestamp=self.clock(),
            status=MessageStatus.READ
        )

    def serialize(self) -> str:
        return serialize_log(self._messages)

    async def flush(self):
        await self._saves.flush()

    async def close(self):
        """Cancel outstanding tasks and write unsaved state."""
        self.tasks.cancel_all()
        self._replies.clear()
        await self._saves.flush()

    def _changed(self):
        self._saves.request()

    # ============= Views =============

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    @property
    def is_responding(self) -> bool:
        return bool(self._replies)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._index

    def get(self, message_id: str) -> Message:
        return self._require(message_id)

    def _require(self, message_id: str) -> Message:
        message = self._index.get(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return message

    def search(self, query: str) -> List[Message]:
        """Messages whose text or sender name contains query, in log order."""
        if not query or not query.strip():
            return list(self._messages)

        needle = query.lower()
        return [
            m for m in self._messages
            if needle in m.text.lower() or (m.sender_name and needle in m.sender_name.lower())
        ]

    def starred(self) -> List[Message]:
        return [m for m in self._messages if m.is_starred]

    def visible(self) -> List[Message]:
        """The log as the chat screen shows it under the current mode."""
        if isinstance(self.mode, Searching):
            return self.search(self.mode.query)
        return list(self._messages)

    def state(self) -> ConversationState:
        return ConversationState(
            conversation_id=self.conversation_id,
            messages=self.visible(),
            mode=self.mode,
            is_responding=self.is_responding
        )

    # ============= Composer Mode =============

    def begin_edit(self, message_id: str) -> Message:
        message = self._require(message_id)
        self.mode = Editing(message_id=message_id)
        return message

    def begin_reply(self, message_id: str) -> Message:
        message = self._require(message_id)
        self.mode = Replying(message_id=message_id)
        return message

    def set_search(self, query: str):
        self.mode = Searching(query=query) if query else Viewing()

    def cancel_composer(self):
        self.mode = Viewing()

    def _mode_targets(self, message_id: str) -> bool:
        return isinstance(self.mode, (Editing, Replying)) and self.mode.message_id == message_id

    # ============= Mutations =============

    def _append(self, message: Message) -> Message:
        if message.id in self._index:
            raise InvalidMessageError(f"Duplicate message id: {message.id}")

        # Log order is authoritative, keep timestamps non-decreasing along it
        if self._messages and message.timestamp < self._messages[-1].timestamp:
            message.timestamp = self._messages[-1].timestamp

        self._messages.append(message)
        self._index[message.id] = message
        self._changed()
        return message

    def _new_user_message(self, text: str, **fields) -> Message:
        return Message(
            id=self.ids.next_id(),
            text=text,
            sender=Sender.USER,
            sender_name=self.user_name,
            sender_avatar=self.user_avatar,
            timestamp=self.clock(),
            status=MessageStatus.SENT,
            **fields
        )

    def send(
        self,
        text: str,
        attachment: Optional[Attachment] = None,
        reply_to_id: Optional[str] = None,
        respond: bool = True
    ) -> Message:
        """Append a user message, start its status progression and ask for a reply."""
        if not text.strip() and attachment is None:
            raise InvalidMessageError("Message needs text or an attachment")

        if reply_to_id is None and isinstance(self.mode, Replying):
            reply_to_id = self.mode.message_id
        reply_to = self._require(reply_to_id).snapshot() if reply_to_id else None

        history = build_history(self._messages, self.history_limit)

        message = self._append(self._new_user_message(text, attachment=attachment, reply_to=reply_to))
        if isinstance(self.mode, Replying):
            self.mode = Viewing()

        self._schedule_progression(message.id, self.delivery_delay)

        if respond and text.strip() and self.responder is not None:
            self._request_reply(message.id, history, text)

        return message

    def send_attachment(
        self,
        source: AttachmentSource,
        url: str = "#",
        label: Optional[str] = None
    ) -> Message:
        """Send an attachment handed over by an intake source."""
        label = label or SOURCE_LABELS[source]
        attachment = attachment_from_source(source, url=url, label=label)
        return self.send(f"Sent {label}", attachment=attachment, respond=False)

    def send_voice(self, duration_seconds: int, url: str = "#") -> Message:
        return self.send("", attachment=voice_attachment(duration_seconds, url), respond=False)

    def edit(self, message_id: str, new_text: str) -> Message:
        """Replace the text of a message and mark it edited."""
        message = self._require(message_id)
        if not new_text.strip() and message.attachment is None:
            raise InvalidMessageError("Edited message needs text or an attachment")

        message.text = new_text
        message.is_edited = True
        if isinstance(self.mode, Editing):
            self.mode = Viewing()

        self._changed()
        return message

    def delete(self, message_id: str):
        """Remove a message for good, together with every task keyed to it."""
        message = self._require(message_id)

        self._replies.pop(message_id, None)
        cancelled = self.tasks.cancel(message_id)
        if cancelled:
            logger.debug("Cancelled %d pending tasks for deleted message %s", cancelled, message_id)

        self._messages.remove(message)
        del self._index[message_id]

        if self._mode_targets(message_id):
            self.mode = Viewing()

        self._changed()

    def toggle_reaction(self, message_id: str, symbol: str, actor_id: Optional[str] = None) -> Message:
        message = self._require(message_id)
        actor = actor_id or self.user_id

        actors = message.reactions.setdefault(symbol, set())
        if actor in actors:
            actors.discard(actor)
        else:
            actors.add(actor)
        if not actors:
            del message.reactions[symbol]

        self._changed()
        return message

    def toggle_star(self, message_id: str) -> Message:
        message = self._require(message_id)
        message.is_starred = not message.is_starred
        self._changed()
        return message

    def forward(self, message_id: str) -> Message:
        """Copy a message's content into a fresh outgoing message."""
        source = self._require(message_id)
        attachment = source.attachment.model_copy() if source.attachment else None

        message = self._append(self._new_user_message(
            source.text,
            attachment=attachment,
            is_forwarded=True
        ))
        self._schedule_progression(message.id, self.forward_delivery_delay)
        return message

    def create_group(self, name: str, member_ids: Sequence[str]) -> Message:
        """Record the creation of a group as a system message."""
        members = set(member_ids)
        if not name.strip() or not members:
            raise InvalidMessageError("A group needs a name and at least one member")

        return self._append(Message(
            id=self.ids.next_id(),
            text=f'You created group "{name}" with {len(members)} members.',
            sender=Sender.SYSTEM,
            timestamp=self.clock(),
            is_system=True
        ))

    def clear(self):
        """Empty the log, dropping every pending timer and reply."""
        cancelled = self.tasks.cancel_all()
        if cancelled:
            logger.debug("Cancelled %d pending tasks while clearing %s", cancelled, self.conversation_id)
        self._replies.clear()

        self._messages = []
        self._index = {}
        self.mode = Viewing()
        self._changed()

    # ============= Deferred Work =============

    def _schedule_progression(self, message_id: str, delivery_delay: float):
        self.tasks.schedule(message_id, delivery_delay, partial(self._advance_status, message_id, MessageStatus.DELIVERED))
        self.tasks.schedule(message_id, self.read_delay, partial(self._advance_status, message_id, MessageStatus.READ))

    def _advance_status(self, message_id: str, status: MessageStatus):
        message = self._index.get(message_id)
        if message is None:
            return
        if message.status is not None and message.status.rank >= status.rank:
            return
        message.status = status
        self._changed()

    def _request_reply(self, trigger_id: str, history: List[ResponderTurn], text: str):
        task = self.tasks.track(trigger_id, self._respond(trigger_id, history, text))
        self._replies[trigger_id] = task
        # Covers tasks cancelled before they ever started running
        task.add_done_callback(lambda t: self._forget_reply(trigger_id, t))

    def _forget_reply(self, trigger_id: str, task: asyncio.Task):
        if self._replies.get(trigger_id) is task:
            del self._replies[trigger_id]

    async def _respond(self, trigger_id: str, history: List[ResponderTurn], text: str):
        try:
            reply = await self.responder.reply(history, text)
        except Exception:
            # No error bubble goes into the transcript
            logger.warning("Responder failed for message %s", trigger_id, exc_info=True)
            return
        finally:
            self._replies.pop(trigger_id, None)

        if trigger_id not in self._index:
            logger.info("Discarding reply to deleted message %s", trigger_id)
            return

        self._append(Message(
            id=self.ids.next_id(),
            text=reply,
            sender=Sender.ASSISTANT,
            sender_name=settings.ASSISTANT_NAME,
            sender_avatar=settings.ASSISTANT_AVATAR,
            timestamp=self.clock(),
            status=MessageStatus.READ
        ))
