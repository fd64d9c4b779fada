from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import Settings, settings
from app.core.errors import ConfigError, UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Du bist ein hilfreicher AI-Assistent für einen Travel Blog. "
    "Antworte freundlich und hilfsbereit auf Deutsch. "
    "Du kannst Fragen über Reisen, Destinations und die Blog-Inhalte beantworten."
)


@dataclass(slots=True)
class ChatReply:
    message: str
    usage: dict[str, Any] | None = None


def build_messages(message: str, conversation: list[dict[str, str]] | None) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for turn in conversation or []:
        messages.append({"role": str(turn.get("role") or ""), "content": str(turn.get("content") or "")})
    messages.append({"role": "user", "content": message})
    return messages


def _first_content(data: dict[str, Any]) -> str | None:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content:
        return None
    return content


class ChatRelay:
    """Forwards one chat turn to the completion API and returns the first choice.

    No retry, no streaming. The API key is looked up on every call so a
    missing key only fails the call that needs it.
    """

    def __init__(
        self,
        config: Settings | None = None,
        *,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or settings
        self.api_key = api_key
        self.transport = transport

    def _resolve_api_key(self) -> str:
        key = self.api_key if self.api_key is not None else self.config.deepseek_api_key
        if not (key or "").strip():
            raise ConfigError("DEEPSEEK_API_KEY is not configured")
        return key.strip()

    async def reply(self, message: str, conversation: list[dict[str, str]] | None = None) -> ChatReply:
        if not (message or "").strip():
            raise ValidationFailed("Message is required", {"message": "required"})
        api_key = self._resolve_api_key()

        payload = {
            "model": self.config.deepseek_model,
            "messages": build_messages(message, conversation),
            "max_tokens": self.config.chat_max_tokens,
            "temperature": self.config.chat_temperature,
            "stream": False,
        }
        url = f"{self.config.deepseek_base_url.rstrip('/')}/chat/completions"

        logger.info("Sending chat completion request (%d turns)", len(payload["messages"]))
        async with httpx.AsyncClient(timeout=self.config.chat_timeout_seconds, transport=self.transport) as client:
            try:
                resp = await client.post(
                    url,
                    headers={"Authorization": f"Bearer {api_key}"},
                    json=payload,
                )
            except httpx.HTTPError as exc:
                logger.exception("Chat completion request failed")
                raise UpstreamError(f"Chat API request failed: {exc}") from exc

        if resp.is_error:
            logger.error("Chat API error %s: %s", resp.status_code, resp.text)
            raise UpstreamError(f"Chat API error: {resp.status_code} {resp.text}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError("Chat API returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamError("Chat API returned an unexpected payload")

        content = _first_content(data)
        if content is None:
            raise UpstreamError("No response from chat API")

        logger.info("Chat completion received")
        return ChatReply(message=content, usage=data.get("usage"))


@dataclass
class ChatConversation:
    """Transient turn history of one open chat window."""

    relay: ChatRelay
    turns: list[dict[str, str]] = field(default_factory=list)

    async def send(self, text: str) -> ChatReply:
        message = (text or "").strip()
        if not message:
            raise ValidationFailed("Message is required", {"message": "required"})
        history = list(self.turns)
        self.turns.append({"role": "user", "content": message})
        reply = await self.relay.reply(message, history)
        self.turns.append({"role": "assistant", "content": reply.message})
        return reply
