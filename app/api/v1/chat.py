from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError

from app.api.v1.deps import get_chat_relay
from app.core.errors import AppError, ValidationFailed
from app.schemas.chat import ChatErrorOut, ChatRelayIn, ChatRelayOut
from app.services.chat_relay import ChatRelay

router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)


async def _read_payload(request: Request) -> ChatRelayIn:
    try:
        return ChatRelayIn.model_validate(await request.json())
    except (ValueError, ValidationError) as exc:
        raise ValidationFailed("Invalid chat request") from exc


@router.post(
    "",
    response_model=ChatRelayOut,
    response_model_exclude_none=True,
    responses={400: {"model": ChatErrorOut}, 500: {"model": ChatErrorOut}},
)
async def relay_chat(request: Request, relay: ChatRelay = Depends(get_chat_relay)):
    try:
        payload = await _read_payload(request)
        reply = await relay.reply(payload.message, [turn.model_dump() for turn in payload.conversation])
    except ValidationFailed as exc:
        return ORJSONResponse(status_code=400, content={"error": exc.message})
    except AppError as exc:
        logger.error("Chat relay failed: %s", exc.message)
        return ORJSONResponse(status_code=500, content={"error": exc.message})
    return ChatRelayOut(message=reply.message, usage=reply.usage)
