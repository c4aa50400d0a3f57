"""
Streaming client for an OpenAI-compatible ``/chat/completions`` endpoint.

The reply arrives as server-sent events::

    data: {"choices": [{"delta": {"content": "Gra"}}]}
    data: {"choices": [{"delta": {"content": "nola"}}]}
    data: [DONE]
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Optional, Protocol

import httpx

from ..core.record import Preferences
from ..errors import AssistantUnavailable
from .prompt import create_instruction, create_prompt

logger = logging.getLogger(__name__)


class Assistant(Protocol):
    def stream(self, content: str, preferences: Preferences) -> AsyncIterator[str]: ...


def categories_of(preferences: Preferences) -> str:
    return ", ".join(p for p in (preferences.lifestyle, preferences.allergen) if p)


def parse_event(line: str) -> Optional[str]:
    """Text delta carried by one SSE line; "" for lines without text, None at
    the end of the stream."""
    if not line.startswith("data:"):
        return ""
    data = line[len("data:"):].strip()
    if data == "[DONE]":
        return None
    try:
        chunk = json.loads(data)
        return chunk["choices"][0].get("delta", {}).get("content") or ""
    except (ValueError, KeyError, IndexError) as exc:
        raise AssistantUnavailable(f"unexpected event from provider: {data[:200]}") from exc


class AssistantClient:
    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.http = http or httpx.AsyncClient(timeout=timeout)

    async def stream(self, content: str, preferences: Preferences) -> AsyncIterator[str]:
        payload = {
            "model": self.model,
            "stream": True,
            "messages": [
                {"role": "system", "content": create_instruction()},
                {
                    "role": "user",
                    "content": create_prompt(content, categories_of(preferences), preferences.other),
                },
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            async with self.http.stream(
                "POST", f"{self.base_url}/chat/completions", json=payload, headers=headers
            ) as resp:
                if resp.status_code >= 400:
                    body = (await resp.aread()).decode(errors="replace")
                    raise AssistantUnavailable(f"provider answered {resp.status_code}: {body[:200]}")
                async for line in resp.aiter_lines():
                    text = parse_event(line)
                    if text is None:
                        break
                    if text:
                        yield text
        except httpx.HTTPError as exc:
            logger.error("assistant request failed: %s", exc)
            raise AssistantUnavailable(str(exc)) from exc

    async def aclose(self) -> None:
        await self.http.aclose()
