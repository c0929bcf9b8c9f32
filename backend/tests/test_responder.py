"""Tests for the LLM responder and history building."""

import asyncio
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from megachat.exceptions import ResponderError
from megachat.schemas.message import Message, MessageStatus, Sender
from megachat.services.responder import FALLBACK_REPLY, LLMResponder, ResponderTurn, build_history


class FakeCompletions:
    def __init__(self, content=None, error=None, delay=0.0):
        self.content = content
        self.error = error
        self.delay = delay
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        choice = SimpleNamespace(message=SimpleNamespace(content=self.content))
        return SimpleNamespace(choices=[choice], usage=None)


def fake_client(**kwargs):
    completions = FakeCompletions(**kwargs)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestBuildHistory:
    """Role tagging of the log tail."""

    def test_roles_and_limit(self):
        messages = [
            Message(id="1", text="welcome", sender=Sender.ASSISTANT, status=MessageStatus.READ),
            Message(id="2", text="hi", sender=Sender.USER, status=MessageStatus.SENT),
            Message(id="3", text="group made", sender=Sender.SYSTEM, is_system=True),
            Message(id="4", text="hello", sender=Sender.ASSISTANT, status=MessageStatus.READ),
        ]

        history = build_history(messages, limit=3)

        assert history == [
            ResponderTurn(role="user", text="hi"),
            ResponderTurn(role="assistant", text="group made"),
            ResponderTurn(role="assistant", text="hello"),
        ]

    def test_zero_limit_sends_no_history(self):
        messages = [Message(id="1", text="hi", sender=Sender.USER)]
        assert build_history(messages, limit=0) == []


class TestLLMResponder:
    """Chat completion calls."""

    async def test_request_contains_system_history_and_new_text(self):
        client, completions = fake_client(content="  Hello!  ")
        responder = LLMResponder(model_id="test-model", system_prompt="be brief", client=client)

        reply = await responder.reply([ResponderTurn(role="assistant", text="welcome")], "hi")

        assert reply == "Hello!"
        request = completions.requests[0]
        assert request["model"] == "test-model"
        assert request["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "assistant", "content": "welcome"},
            {"role": "user", "content": "hi"},
        ]

    async def test_empty_completion_falls_back(self):
        client, _ = fake_client(content="")
        responder = LLMResponder(client=client)

        assert await responder.reply([], "hi") == FALLBACK_REPLY

    async def test_sdk_error_becomes_responder_error(self):
        client, _ = fake_client(error=OpenAIError("connection refused"))
        responder = LLMResponder(client=client)

        with pytest.raises(ResponderError):
            await responder.reply([], "hi")

    async def test_timeout_becomes_responder_error(self):
        client, _ = fake_client(content="late", delay=0.5)
        responder = LLMResponder(client=client, timeout=0.01)

        with pytest.raises(ResponderError):
            await responder.reply([], "hi")
