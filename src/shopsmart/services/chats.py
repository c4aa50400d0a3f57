"""Chat sessions: message history stored as JSON inside each chat hash."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from ..core.engine import RecordEngine
from ..core.record import Chat, Message, now_utc
from ..errors import ResultCode, ResultError

CHATS = "chats"
TITLE_LENGTH = 100


def normalize_messages(messages: Iterable[Any]) -> List[Message]:
    """Coerce ``{role, content}`` mappings (or `Message`s) into `Message`s."""
    try:
        return [m if isinstance(m, Message) else Message.model_validate(m) for m in messages]
    except ValidationError as exc:
        raise ResultError(f"Invalid messages: {exc}", ResultCode.InvalidSubmission) from exc


def _dump(messages: Iterable[Message]) -> List[Mapping[str, str]]:
    return [m.model_dump() for m in messages]


class ChatService:
    def __init__(self, engine: RecordEngine):
        self.engine = engine

    async def create(self, owner_id: str, messages: Iterable[Any]) -> Chat:
        msgs = normalize_messages(messages)
        if not msgs:
            raise ResultError("A chat needs at least one message", ResultCode.InvalidSubmission)
        now = now_utc()
        record = await self.engine.create_owned(
            CHATS,
            owner_id,
            {
                "title": msgs[0].content[:TITLE_LENGTH],
                "messages": _dump(msgs),
                "createdAt": now,
                "updatedAt": now,
            },
        )
        return Chat.from_fields(record)

    async def list(self, owner_id: str) -> List[Chat]:
        return [Chat.from_fields(r) for r in await self.engine.list_owned(CHATS, owner_id)]

    async def get(self, owner_id: str, chat_id: str) -> Chat:
        return Chat.from_fields(await self.engine.fetch_owned(CHATS, owner_id, chat_id))

    async def delete(self, owner_id: str, chat_id: str) -> None:
        await self.engine.delete_owned(CHATS, owner_id, chat_id)

    async def delete_all(self, owner_id: str) -> int:
        return await self.engine.delete_all_owned(CHATS, owner_id)

    async def append_messages(
        self, owner_id: str, chat_id: str, messages: Iterable[Any]
    ) -> Chat:
        # read-modify-write: concurrent appends to one chat can lose messages
        chat = await self.get(owner_id, chat_id)
        combined = list(chat.messages) + normalize_messages(messages)
        record = await self.engine.update_owned(
            CHATS,
            owner_id,
            chat_id,
            {"messages": _dump(combined), "updatedAt": now_utc()},
        )
        return Chat.from_fields(record)

    async def share(self, owner_id: str, chat_id: str) -> str:
        path = f"/share/{chat_id}"
        await self.engine.update_owned(CHATS, owner_id, chat_id, {"sharePath": path})
        return path

    async def get_shared(self, chat_id: str) -> Optional[Chat]:
        """Public read; only chats that were shared."""
        record = await self.engine.get(CHATS, chat_id)
        if not record or not record.get("sharePath"):
            return None
        return Chat.from_fields(record)
