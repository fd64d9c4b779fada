from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    role: str
    content: str


class ChatRelayIn(BaseModel):
    message: str = ""
    conversation: list[ChatTurn] = Field(default_factory=list)


class ChatRelayOut(BaseModel):
    message: str
    usage: dict[str, Any] | None = None


class ChatErrorOut(BaseModel):
    error: str
