"""
Thin data-access layer around record hashes.
Every record lives as a flat field map at its primary key.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

from .backends.base import DELETE, GET_ALL, PUT, BatchOp, KeyValueBackend, OpResult

logger = logging.getLogger(__name__)


def _storable(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop `None` values; a hash has no null."""
    return {k: v for k, v in fields.items() if v is not None}


class RecordStore:
    """Thin data-access layer around record hashes."""

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    # ---- writes ---------------------------------------------------------
    async def put(self, key: str, fields: Mapping[str, Any]) -> bool:
        """Create or overwrite the supplied fields at `key` (last writer wins)."""
        data = _storable(fields)
        if not data:
            return False
        await self.backend.hset(key, data)
        return True

    async def delete(self, key: str) -> int:
        """Number of keys removed (0 or 1)."""
        return await self.backend.delete(key)

    # ---- reads ----------------------------------------------------------
    async def get_all(self, key: str) -> Dict[str, str]:
        """All fields at `key`, or ``{}`` when the key does not exist."""
        return await self.backend.hgetall(key) or {}

    async def scan(self, prefix: str) -> List[str]:
        """Every key under ``prefix:``."""
        return await self.backend.scan_keys(prefix)

    # ---- batches --------------------------------------------------------
    async def batch(self, ops: Sequence[BatchOp]) -> List[OpResult]:
        """
        One round trip; results line up with `ops`.

        Each op succeeds or fails on its own, there is **no** atomicity
        across the batch.
        """
        ops = [
            BatchOp(op.verb, op.key, (_storable(op.args[0]),)) if op.verb == PUT else op
            for op in ops
        ]
        results = await self.backend.execute_batch(ops)
        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.warning("%d of %d batched operations failed", failed, len(results))
        return results

    async def get_many(self, keys: Sequence[str]) -> List[OpResult]:
        return await self.batch([BatchOp(GET_ALL, k) for k in keys])

    async def put_many(self, rows: Mapping[str, Mapping[str, Any]]) -> List[OpResult]:
        return await self.batch([BatchOp(PUT, k, (v,)) for k, v in rows.items()])

    async def delete_many(self, keys: Sequence[str]) -> List[OpResult]:
        return await self.batch([BatchOp(DELETE, k) for k in keys])
