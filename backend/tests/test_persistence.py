"""Tests for serialization, persistence adapters and the save queue."""

import asyncio
import json

import pytest

from megachat.database import close_db, create_engine, create_session_factory, init_db
from megachat.exceptions import PersistenceError
from megachat.schemas.message import AttachmentSource, Message, MessageStatus, Sender
from megachat.services.conversation_store import ConversationStore
from megachat.services.manager import ConversationManager
from megachat.services.persistence import (
    MemoryPersistence,
    SaveQueue,
    SQLitePersistence,
    deserialize_log,
    serialize_log,
)
from megachat.utils.ids import MessageIdGenerator
from tests.fakes import FlakyPersistence, SlowPersistence, wait_until


class TestSerialization:
    """JSON encoding of the log."""

    def test_log_is_json_array_of_records(self):
        message = Message(id="1", text="hi", sender=Sender.USER, status=MessageStatus.SENT)
        message.reactions["❤️"] = {"u2", "u1"}

        records = json.loads(serialize_log([message]))

        assert isinstance(records, list)
        assert records[0]["id"] == "1"
        assert records[0]["status"] == "sent"
        assert records[0]["reactions"] == {"❤️": ["u1", "u2"]}

    def test_reactions_decode_back_to_sets(self):
        message = Message(id="1", text="hi", sender=Sender.USER)
        message.reactions["❤️"] = {"u1"}

        restored = deserialize_log(serialize_log([message]))

        assert restored[0].reactions == {"❤️": {"u1"}}

    def test_corrupt_payload_raises(self):
        with pytest.raises(PersistenceError):
            deserialize_log('[{"id": 1}]')
        with pytest.raises(PersistenceError):
            deserialize_log("not json")


class TestStoreReload:
    """Conversation state survives a reopen."""

    async def test_reopen_restores_log(self, store_options):
        persistence = MemoryPersistence()
        store = await ConversationStore.open("chat", persistence, None, **store_options)
        first = store.send("hello")
        store.toggle_star(first.id)
        reply = store.send("again", reply_to_id=first.id)
        store.send_attachment(AttachmentSource.CONTACT)
        await store.close()

        reopened = await ConversationStore.open("chat", persistence, None, **store_options)
        try:
            assert [m.id for m in reopened.messages] == [m.id for m in store.messages]
            assert reopened.get(first.id).is_starred
            assert reopened.get(reply.id).reply_to.text == "hello"
        finally:
            await reopened.close()

    async def test_ids_after_reload_sort_after_loaded_ids(self, store_options):
        persistence = MemoryPersistence()
        store = await ConversationStore.open("chat", persistence, None, **store_options)
        last = store.send("before restart")
        await store.close()

        options = dict(store_options, id_generator=MessageIdGenerator())
        reopened = await ConversationStore.open("chat", persistence, None, **options)
        try:
            fresh = reopened.send("after restart")
            assert fresh.id > last.id
        finally:
            await reopened.close()

    async def test_unfinished_progression_resumes_after_reload(self, store_options):
        persistence = MemoryPersistence()
        store = await ConversationStore.open("chat", persistence, None, **store_options)
        message = store.send("in flight")
        await store.close()

        reopened = await ConversationStore.open("chat", persistence, None, **store_options)
        try:
            loaded = reopened.get(message.id)
            assert loaded.status == MessageStatus.SENT
            await wait_until(lambda: loaded.status == MessageStatus.READ)
        finally:
            await reopened.close()

    async def test_corrupt_saved_state_falls_back_to_seed(self, store_options):
        persistence = MemoryPersistence({"chat": "{broken"})
        store = await ConversationStore.open("chat", persistence, None, **store_options)
        try:
            assert len(store) == 1
            assert store.messages[0].sender == Sender.ASSISTANT
        finally:
            await store.close()

    async def test_failed_load_keeps_saved_log(self, store_options):
        persistence = FlakyPersistence(failures=0)
        store = await ConversationStore.open("chat", persistence, None, **store_options)
        for i in range(3):
            store.send(f"important {i}")
        await store.close()

        persistence.load_failures = 1
        with pytest.raises(PersistenceError):
            await ConversationStore.open("chat", persistence, None, **store_options)
        assert "important 0" in persistence.data["chat"]

        reopened = await ConversationStore.open("chat", persistence, None, **store_options)
        try:
            reopened.send("new message")
            await reopened.flush()
            texts = [m.text for m in deserialize_log(persistence.data["chat"])]
            assert texts[1:] == ["important 0", "important 1", "important 2", "new message"]
        finally:
            await reopened.close()

    async def test_manager_retries_after_failed_load(self, store_options):
        persistence = FlakyPersistence(failures=0, load_failures=1)
        manager = ConversationManager(persistence, None, **store_options)
        try:
            with pytest.raises(PersistenceError):
                await manager.get("chat")
            assert "chat" not in manager

            store = await manager.get("chat")
            assert "chat" in manager
            assert await manager.get("chat") is store
        finally:
            await manager.close()

    async def test_every_mutation_is_saved(self, store_options):
        persistence = MemoryPersistence()
        store = await ConversationStore.open("chat", persistence, None, **store_options)
        try:
            message = store.send("hello")
            await wait_until(lambda: "chat" in persistence.data)
            store.edit(message.id, "hello there")
            await store.flush()

            saved = deserialize_log(persistence.data["chat"])
            assert saved[-1].text == "hello there"
            assert saved[-1].is_edited
        finally:
            await store.close()


class TestSaveQueue:
    """Debounced, ordered saves."""

    async def test_debounce_batches_requests(self):
        persistence = MemoryPersistence()
        state = {"value": 0}
        queue = SaveQueue(persistence, "c", lambda: str(state["value"]), debounce=0.02)

        for i in range(5):
            state["value"] = i
            queue.request()
        await asyncio.sleep(0.06)

        assert persistence.saves == 1
        assert persistence.data["c"] == "4"

    async def test_later_state_is_never_overwritten(self):
        persistence = SlowPersistence(delay=0.03)
        state = {"value": "first"}
        queue = SaveQueue(persistence, "c", lambda: state["value"], debounce=0)

        queue.request()
        await asyncio.sleep(0.01)
        state["value"] = "second"
        queue.request()
        await wait_until(lambda: not queue.dirty and persistence.data.get("c") == "second")
        await asyncio.sleep(0.05)

        assert persistence.data["c"] == "second"
        assert persistence.history[-1] == "second"

    async def test_failed_save_is_retried_on_next_request(self):
        persistence = FlakyPersistence(failures=1)
        queue = SaveQueue(persistence, "c", lambda: "payload", debounce=0)

        queue.request()
        await wait_until(lambda: persistence.attempts == 1)
        await asyncio.sleep(0.01)
        assert queue.dirty
        assert "c" not in persistence.data

        queue.request()
        await wait_until(lambda: "c" in persistence.data)
        assert not queue.dirty

    async def test_flush_writes_immediately(self):
        persistence = MemoryPersistence()
        queue = SaveQueue(persistence, "c", lambda: "payload", debounce=10)

        queue.request()
        await queue.flush()

        assert persistence.data["c"] == "payload"
        assert not queue.dirty

    async def test_request_during_flush_keeps_its_task(self):
        persistence = MemoryPersistence()
        state = {"value": "first"}
        queue = SaveQueue(persistence, "c", lambda: state["value"], debounce=10)

        queue.request()
        await asyncio.sleep(0)
        cancelled = queue._pending

        def change_state(task):
            state["value"] = "second"
            queue.request()

        cancelled.add_done_callback(change_state)
        await queue.flush()

        assert queue._pending is not None
        assert queue._pending is not cancelled
        await queue._pending
        assert persistence.data["c"] == "second"
        assert not queue.dirty


class TestSQLitePersistence:
    """Snapshot table over aiosqlite."""

    @pytest.fixture
    async def sqlite(self, tmp_path):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
        await init_db(engine)
        yield SQLitePersistence(create_session_factory(engine))
        await close_db(engine)

    async def test_missing_conversation_loads_none(self, sqlite):
        assert await sqlite.load("nobody") is None

    async def test_save_then_load(self, sqlite):
        await sqlite.save("chat", "[]")
        await sqlite.save("chat", '[{"id": "1"}]')

        assert await sqlite.load("chat") == '[{"id": "1"}]'

    async def test_store_round_trip(self, sqlite, store_options):
        store = await ConversationStore.open("chat", sqlite, None, **store_options)
        message = store.send("persist me")
        await store.close()

        reopened = await ConversationStore.open("chat", sqlite, None, **store_options)
        try:
            assert reopened.get(message.id).text == "persist me"
        finally:
            await reopened.close()
