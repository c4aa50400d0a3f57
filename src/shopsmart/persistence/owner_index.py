"""
Per-owner ordered sets: "which records of collection C does owner O have,
most recently modified first".

The index is derived data; the record engine is the only writer.
"""

from __future__ import annotations

from typing import List

from .backends.base import KeyValueBackend
from .keys import owner_index_key


class OwnerIndex:
    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    async def add(self, owner_id: str, collection: str, member: str, score: float) -> None:
        """Insert `member`, or just move it to `score` when already present."""
        await self.backend.zadd(owner_index_key(collection, owner_id), member, score)

    async def remove(self, owner_id: str, collection: str, member: str) -> None:
        await self.backend.zrem(owner_index_key(collection, owner_id), member)

    async def list_descending(self, owner_id: str, collection: str) -> List[str]:
        """
        Members by score, highest first. Equal scores fall back to reverse
        lexical member order on every backend.
        """
        return await self.backend.zrange_desc(owner_index_key(collection, owner_id))

    async def clear(self, owner_id: str, collection: str) -> List[str]:
        """Atomically empty the set and return what it held."""
        return await self.backend.zdrain(owner_index_key(collection, owner_id))
