"""Chat sessions of the logged-in user, the assistant turn and public shares."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..assistant import Assistant
from ..bootstrap import Services
from ..core.record import Message
from ..errors import RecordNotFound, ResultCode
from ..persistence.keys import primary_key
from ..services import CHATS
from .deps import get_assistant, get_services, rate_limit, session_user_id
from .errors import result
from .schemas import ChatMessage, CreateChat
from .streaming import stream_reply

router = APIRouter(prefix="/chat", tags=["chats"])


@router.post("", status_code=201)
async def create_chat(
    body: CreateChat,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    await services.chats.create(user_id, body.messages)
    return result(ResultCode.ChatCreated, 201)


@router.get("")
async def list_chats(
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    return [c.model_dump(mode="json") for c in await services.chats.list(user_id)]


@router.delete("")
async def delete_chats(
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    await services.chats.delete_all(user_id)
    return result(ResultCode.ChatUpdated)


@router.get("/{chat_id}")
async def get_chat(
    chat_id: str,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    return (await services.chats.get(user_id, chat_id)).model_dump(mode="json")


@router.post("/{chat_id}")
async def send_message(
    chat_id: str,
    body: ChatMessage,
    user_id: str = Depends(session_user_id),
    _limit: None = Depends(rate_limit),
    services: Services = Depends(get_services),
    assistant: Assistant = Depends(get_assistant),
):
    await services.chats.get(user_id, chat_id)
    user = await services.users.require(user_id)
    preferences = await services.users.get_preferences(user)

    async def on_finish(text: str) -> None:
        await services.chats.append_messages(
            user_id,
            chat_id,
            [
                Message(role="user", content=body.content),
                Message(role="assistant", content=text),
            ],
        )

    return await stream_reply(assistant.stream(body.content, preferences), on_finish)


@router.delete("/{chat_id}", response_class=PlainTextResponse)
async def delete_chat(
    chat_id: str,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    await services.chats.delete(user_id, chat_id)
    return "OK"


@router.put("/{chat_id}/share")
async def share_chat(
    chat_id: str,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    return await services.chats.share(user_id, chat_id)


@router.get("/{chat_id}/share")
async def get_shared_chat(chat_id: str, services: Services = Depends(get_services)):
    chat = await services.chats.get_shared(chat_id)
    if chat is None:
        raise RecordNotFound(primary_key(CHATS, chat_id))
    return chat.model_dump(mode="json")
