"""Relay an assistant reply to the client as ``text/plain``."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from fastapi.responses import StreamingResponse

from ..errors import AssistantUnavailable, ShopsmartError

logger = logging.getLogger(__name__)

OnFinish = Callable[[str], Awaitable[None]]


async def stream_reply(
    chunks: AsyncIterator[str], on_finish: Optional[OnFinish] = None
) -> StreamingResponse:
    """
    Wait for the first chunk before answering, so a provider that fails up
    front still produces a proper error response. Failures after that point
    can only end the body early; `on_finish` then is not called.
    """
    try:
        first = await chunks.__anext__()
    except StopAsyncIteration:
        first = ""

    async def body() -> AsyncIterator[str]:
        parts: List[str] = [first]
        if first:
            yield first
        try:
            async for chunk in chunks:
                parts.append(chunk)
                yield chunk
        except AssistantUnavailable as exc:
            logger.error("assistant stream aborted: %s", exc)
            return
        if on_finish is None:
            return
        try:
            await on_finish("".join(parts))
        except ShopsmartError as exc:
            # response already sent; nothing left to tell the client
            logger.error("could not store assistant reply: %s", exc)

    return StreamingResponse(body(), media_type="text/plain")
