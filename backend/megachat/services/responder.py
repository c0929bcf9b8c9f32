"""
Responder service supplying assistant replies via an OpenAI-compatible API.
"""

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel
from typing import List, Optional, Dict, Literal, Protocol, Sequence
import asyncio
import logging
import time

from ..config import settings
from ..exceptions import ResponderError
from ..schemas.message import Message, Sender

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm speechless!"


class ResponderTurn(BaseModel):
    """One role-tagged entry of the history sent to the responder."""
    role: Literal["user", "assistant"]
    text: str

    @classmethod
    def from_message(cls, message: Message) -> "ResponderTurn":
        role = "user" if message.sender == Sender.USER else "assistant"
        return cls(role=role, text=message.text)


def build_history(messages: Sequence[Message], limit: int) -> List[ResponderTurn]:
    """Role-tag the last `limit` messages of the log."""
    tail = list(messages)[-limit:] if limit > 0 else []
    return [ResponderTurn.from_message(m) for m in tail]


class Responder(Protocol):
    """Anything that can produce an assistant reply for a history plus new text."""

    async def reply(self, history: List[ResponderTurn], text: str) -> str:
        ...


class LLMResponder:
    """Responder backed by a chat completion endpoint."""

    def __init__(
        self,
        api_base: Optional[str] = None,
        model_id: Optional[str] = None,
        api_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        self.api_base = api_base or settings.RESPONDER_API_BASE
        self.model_id = model_id or settings.RESPONDER_MODEL_ID
        self.api_key = api_key or settings.RESPONDER_API_KEY or "not-needed"
        self.system_prompt = system_prompt or settings.RESPONDER_SYSTEM_PROMPT
        self.timeout = timeout or settings.RESPONDER_TIMEOUT

        self.client = client or AsyncOpenAI(
            base_url=self.api_base,
            api_key=self.api_key,
            max_retries=0
        )

    def _build_messages(self, history: List[ResponderTurn], text: str) -> List[Dict[str, str]]:
        """Build the full message list for the API call."""
        messages = [{"role": "system", "content": self.system_prompt}]

        for turn in history:
            messages.append({"role": turn.role, "content": turn.text})

        messages.append({"role": "user", "content": text})
        return messages

    async def reply(self, history: List[ResponderTurn], text: str) -> str:
        messages = self._build_messages(history, text)
        start_time = time.time()

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model_id,
                    messages=messages,
                    stream=False
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ResponderError(f"Responder timed out after {self.timeout}s") from e
        except OpenAIError as e:
            raise ResponderError(str(e)) from e

        logger.debug(
            "Responder answered in %d ms with model %s",
            int((time.time() - start_time) * 1000),
            self.model_id
        )

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip() or FALLBACK_REPLY
