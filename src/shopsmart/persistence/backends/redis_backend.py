"""
Production backend on ``redis.asyncio`` (RediSearch module required for the
``ft_*`` calls).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import redis.asyncio as aioredis
from redis.exceptions import RedisError, ResponseError

from ...errors import StoreUnavailable
from ..search import IndexField
from .base import DELETE, GET_ALL, PUT, BatchOp, OpResult

logger = logging.getLogger(__name__)


@contextmanager
def _translated(op: str, *, search: bool = False) -> Iterator[None]:
    """Re-raise driver errors as shopsmart errors."""
    try:
        yield
    except ResponseError as exc:
        msg = str(exc).lower()
        if search and ("unknown index" in msg or "no such index" in msg):
            raise LookupError(str(exc)) from exc
        if search and ("syntax error" in msg or "already exists" in msg):
            raise ValueError(str(exc)) from exc
        logger.error("redis %s failed: %s", op, exc)
        raise StoreUnavailable(f"redis {op} failed: {exc}") from exc
    except RedisError as exc:
        logger.error("redis %s failed: %s", op, exc)
        raise StoreUnavailable(f"redis {op} failed: {exc}") from exc


class RedisBackend:
    """`KeyValueBackend` on a shared ``redis.asyncio.Redis`` client."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    @classmethod
    def connect(
        cls,
        host: str = "localhost",
        port: int = 6379,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> "RedisBackend":
        client = aioredis.Redis(
            host=host,
            port=port,
            username=username,
            password=password,
            decode_responses=True,
        )
        return cls(client)

    # ---- hashes ---------------------------------------------------------
    async def hset(self, key: str, mapping: Mapping[str, Any]) -> int:
        with _translated("hset"):
            return await self.client.hset(key, mapping=dict(mapping))

    async def hgetall(self, key: str) -> Dict[str, str]:
        with _translated("hgetall"):
            return await self.client.hgetall(key)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _translated("del"):
            return await self.client.delete(*keys)

    async def scan_keys(self, prefix: str) -> List[str]:
        with _translated("scan"):
            return [k async for k in self.client.scan_iter(match=f"{prefix}:*")]

    # ---- sorted sets ----------------------------------------------------
    async def zadd(self, key: str, member: str, score: float) -> None:
        with _translated("zadd"):
            await self.client.zadd(key, {member: score})

    async def zrem(self, key: str, member: str) -> int:
        with _translated("zrem"):
            return await self.client.zrem(key, member)

    async def zrange_desc(self, key: str) -> List[str]:
        # equal scores come back in reverse lexical member order
        with _translated("zrange"):
            return await self.client.zrange(key, 0, -1, desc=True)

    async def zdrain(self, key: str) -> List[str]:
        with _translated("zdrain"):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.zrange(key, 0, -1)
                pipe.delete(key)
                members, _ = await pipe.execute()
        return list(members)

    # ---- batches --------------------------------------------------------
    async def execute_batch(self, ops: Sequence[BatchOp]) -> List[OpResult]:
        if not ops:
            return []
        with _translated("pipeline"):
            async with self.client.pipeline(transaction=False) as pipe:
                for op in ops:
                    if op.verb == PUT:
                        pipe.hset(op.key, mapping=dict(op.args[0]))
                    elif op.verb == GET_ALL:
                        pipe.hgetall(op.key)
                    elif op.verb == DELETE:
                        pipe.delete(op.key)
                    else:
                        raise ValueError(f"unknown batch verb {op.verb!r}")
                raw = await pipe.execute(raise_on_error=False)
        return [
            OpResult(error=r) if isinstance(r, Exception) else OpResult(value=r)
            for r in raw
        ]

    # ---- search ---------------------------------------------------------
    async def ft_create(self, index: str, prefix: str, schema: Sequence[IndexField]) -> None:
        args: List[str] = []
        for f in schema:
            args.extend(f.as_args())
        with _translated("ft.create", search=True):
            await self.client.execute_command(
                "FT.CREATE", index, "ON", "HASH", "PREFIX", "1", prefix, "SCHEMA", *args
            )

    async def ft_drop(self, index: str) -> None:
        with _translated("ft.dropindex", search=True):
            await self.client.execute_command("FT.DROPINDEX", index)

    async def ft_search(self, index: str, query: str, offset: int, limit: int) -> List[Any]:
        with _translated("ft.search", search=True):
            return await self.client.execute_command(
                "FT.SEARCH", index, query, "LIMIT", str(offset), str(limit)
            )

    async def close(self) -> None:
        await self.client.aclose()
