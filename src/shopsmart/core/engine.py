"""
Relational records over a flat key-value store.

Collections are hashes at ``<collection>:<id>``. An *owned* collection also
keeps a per-owner sorted index (``users:<collection>:<ownerId>``) scored by
last-modified time, so an owner's records list most-recent-first without a
scan.

Consistency is best effort. Record and index writes are separate store calls:

* create / update  record first, then index (a crash leaves an unlisted
                   record that is still fetchable by id)
* delete           record first, then index (a crash leaves an orphaned
                   index entry, which `list_owned` skips)
* delete-all       index first, then records (a crash leaks records, never
                   listed entries)

`fetch_owned` is the only ownership check; every single-record read, write
and delete of an owned collection goes through it.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..errors import RecordNotFound, StoreUnavailable, Unauthorized
from ..persistence.owner_index import OwnerIndex
from ..persistence.store import RecordStore
from ..persistence.keys import primary_key, split_key
from .record import OWNER_FIELD, flatten

logger = logging.getLogger(__name__)

_PROTECTED = ("id", OWNER_FIELD)


def _new_id() -> str:
    return str(uuid.uuid4())


def _raise_failed(key: str, error: BaseException) -> None:
    if isinstance(error, StoreUnavailable):
        raise error
    raise StoreUnavailable(f"reading {key} failed: {error}") from error


class RecordEngine:
    """Collection-level CRUD with owner indexes and ownership checks."""

    def __init__(
        self,
        store: RecordStore,
        index: OwnerIndex,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.index = index
        self._clock = clock
        self._last_score = 0.0

    def _now(self) -> float:
        """Millisecond score, strictly increasing within this engine."""
        score = float(math.floor(self._clock() * 1000))
        if score <= self._last_score:
            score = self._last_score + 1
        self._last_score = score
        return score

    # ------------------------------------------------------------------ #
    # owned collections
    # ------------------------------------------------------------------ #
    async def create_owned(
        self, collection: str, owner_id: str, fields: Mapping[str, Any]
    ) -> Dict[str, str]:
        record_id = _new_id()
        record = flatten({**fields, "id": record_id, OWNER_FIELD: owner_id})
        key = primary_key(collection, record_id)

        # a failed put raises here, so the index never points at nothing
        await self.store.put(key, record)
        await self.index.add(owner_id, collection, key, self._now())
        logger.debug("created %s for %s", key, owner_id)
        return record

    async def fetch_owned(
        self, collection: str, owner_id: str, record_id: str
    ) -> Dict[str, str]:
        key = primary_key(collection, record_id)
        record = await self.store.get_all(key)
        if not record:
            raise RecordNotFound(key)
        if record.get(OWNER_FIELD) != owner_id:
            logger.warning("%s denied to %s (owner %s)", key, owner_id, record.get(OWNER_FIELD))
            raise Unauthorized(key, owner_id)
        return record

    async def list_owned(self, collection: str, owner_id: str) -> List[Dict[str, str]]:
        """Owner's records, last modified first. Members whose record is gone
        are skipped, not repaired."""
        members = await self.index.list_descending(owner_id, collection)
        if not members:
            return []
        results = await self.store.get_many(members)

        records: List[Dict[str, str]] = []
        for key, result in zip(members, results):
            if not result.ok:
                _raise_failed(key, result.error)
            record = result.value
            if not record:
                logger.debug("index %s:%s points at missing %s", collection, owner_id, key)
                continue
            if record.get(OWNER_FIELD) != owner_id:
                logger.warning("index of %s lists %s owned by someone else", owner_id, key)
                continue
            records.append(record)
        return records

    async def update_owned(
        self,
        collection: str,
        owner_id: str,
        record_id: str,
        changes: Mapping[str, Any],
    ) -> Dict[str, str]:
        current = await self.fetch_owned(collection, owner_id, record_id)
        merged = {
            **current,
            **flatten({k: v for k, v in changes.items() if k not in _PROTECTED}),
        }
        key = primary_key(collection, record_id)
        await self.store.put(key, merged)
        await self.index.add(owner_id, collection, key, self._now())
        return merged

    async def delete_owned(self, collection: str, owner_id: str, record_id: str) -> None:
        await self.fetch_owned(collection, owner_id, record_id)
        key = primary_key(collection, record_id)
        await self.store.delete(key)
        await self.index.remove(owner_id, collection, key)

    async def delete_all_owned(self, collection: str, owner_id: str) -> int:
        """Drain the owner's index, then delete what it held. Returns the
        number of records removed."""
        members = await self.index.clear(owner_id, collection)
        if not members:
            return 0
        results = await self.store.delete_many(members)
        deleted = 0
        for key, result in zip(members, results):
            if result.ok:
                deleted += int(result.value or 0)
            else:
                logger.error("could not delete %s after clearing its index: %s", key, result.error)
        return deleted

    async def repair_owner_index(self, collection: str, owner_id: str) -> int:
        """Drop index members whose record no longer exists."""
        members = await self.index.list_descending(owner_id, collection)
        results = await self.store.get_many(members) if members else []
        removed = 0
        for key, result in zip(members, results):
            if result.ok and not result.value:
                await self.index.remove(owner_id, collection, key)
                removed += 1
        if removed:
            logger.info("removed %d dangling entries from %s index of %s", removed, collection, owner_id)
        return removed

    # ------------------------------------------------------------------ #
    # top-level collections (no owner)
    # ------------------------------------------------------------------ #
    async def create(
        self, collection: str, fields: Mapping[str, Any], record_id: Optional[str] = None
    ) -> Dict[str, str]:
        record = flatten({**fields, "id": record_id or _new_id()})
        await self.store.put(primary_key(collection, record["id"]), record)
        return record

    async def create_many(self, collection: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Bulk load; returns how many rows failed."""
        batch = {}
        for row in rows:
            record = flatten({**row, "id": row.get("id") or _new_id()})
            batch[primary_key(collection, record["id"])] = record
        results = await self.store.put_many(batch)
        return sum(1 for r in results if not r.ok)

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, str]]:
        record = await self.store.get_all(primary_key(collection, record_id))
        return record or None

    async def update(
        self, collection: str, record_id: str, changes: Mapping[str, Any]
    ) -> Dict[str, str]:
        key = primary_key(collection, record_id)
        current = await self.store.get_all(key)
        if not current:
            raise RecordNotFound(key)
        data = flatten({k: v for k, v in changes.items() if k != "id"})
        await self.store.put(key, data)
        return {**current, **data}

    async def delete(self, collection: str, record_id: str) -> int:
        return await self.store.delete(primary_key(collection, record_id))

    async def list_all(self, collection: str) -> List[Dict[str, str]]:
        """Every record of a collection (full scan; use sparingly)."""
        keys = sorted(k for k in await self.store.scan(collection) if len(split_key(k)) == 2)
        if not keys:
            return []
        records = []
        for key, result in zip(keys, await self.store.get_many(keys)):
            if not result.ok:
                _raise_failed(key, result.error)
            if result.value and "id" in result.value:
                records.append(result.value)
        return records
