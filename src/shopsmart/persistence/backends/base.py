"""
Async key-value protocol every backend implements.

Hashes hold records, sorted sets hold owner indexes, and the ``ft_*`` calls
mirror RediSearch. ``execute_batch`` runs one round trip whose operations
succeed or fail independently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..search import IndexField

PUT = "put"
GET_ALL = "get_all"
DELETE = "delete"
VERBS = (PUT, GET_ALL, DELETE)


@dataclass(frozen=True)
class BatchOp:
    verb: str
    key: str
    args: Tuple[Any, ...] = ()


@dataclass
class OpResult:
    value: Any = None
    error: Optional[BaseException] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None


class KeyValueBackend(Protocol):
    # ---- hashes ---------------------------------------------------------
    async def hset(self, key: str, mapping: Mapping[str, Any]) -> int: ...

    async def hgetall(self, key: str) -> Dict[str, str]: ...

    async def delete(self, *keys: str) -> int: ...

    async def scan_keys(self, prefix: str) -> List[str]: ...

    # ---- sorted sets ----------------------------------------------------
    async def zadd(self, key: str, member: str, score: float) -> None: ...

    async def zrem(self, key: str, member: str) -> int: ...

    async def zrange_desc(self, key: str) -> List[str]: ...

    async def zdrain(self, key: str) -> List[str]: ...

    # ---- batches --------------------------------------------------------
    async def execute_batch(self, ops: Sequence[BatchOp]) -> List[OpResult]: ...

    # ---- search ---------------------------------------------------------
    async def ft_create(self, index: str, prefix: str, schema: Sequence[IndexField]) -> None: ...

    async def ft_drop(self, index: str) -> None: ...

    async def ft_search(self, index: str, query: str, offset: int, limit: int) -> List[Any]: ...

    async def close(self) -> None: ...
