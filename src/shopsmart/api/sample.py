"""One-off assistant replies for visitors; nothing is stored."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..assistant import Assistant
from ..core.record import Preferences
from .deps import get_assistant, rate_limit
from .schemas import SampleMessage
from .streaming import stream_reply

router = APIRouter(tags=["sample"])


@router.post("/message/sample", dependencies=[Depends(rate_limit)])
async def sample_message(body: SampleMessage, assistant: Assistant = Depends(get_assistant)):
    preferences = Preferences(other=body.preferences)
    return await stream_reply(assistant.stream(body.content, preferences))
