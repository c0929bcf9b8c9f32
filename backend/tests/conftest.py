"""Shared fixtures for conversation tests."""

import pytest

from megachat.services.conversation_store import ConversationStore
from megachat.services.persistence import MemoryPersistence
from megachat.utils.ids import MessageIdGenerator
from tests.fakes import ScriptedResponder

DELIVERY_DELAY = 0.05
READ_DELAY = 0.2


@pytest.fixture
def persistence():
    return MemoryPersistence()


@pytest.fixture
def responder():
    return ScriptedResponder()


@pytest.fixture
def store_options():
    return {
        "delivery_delay": DELIVERY_DELAY,
        "read_delay": READ_DELAY,
        "forward_delivery_delay": DELIVERY_DELAY,
        "save_debounce": 0,
        "id_generator": MessageIdGenerator(),
    }


@pytest.fixture
async def store(persistence, responder, store_options):
    store = await ConversationStore.open("chat-1", persistence, responder, **store_options)
    yield store
    await store.close()


@pytest.fixture
async def quiet_store(persistence, store_options):
    """Store without a responder, so only user actions touch the log."""
    store = await ConversationStore.open("chat-quiet", persistence, None, **store_options)
    yield store
    await store.close()
