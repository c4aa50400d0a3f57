"""
Key-value backend on SQLAlchemy's asyncio extension.

Emulates the subset of Redis the store needs (hashes, sorted sets,
FT.SEARCH over tag/text fields) so the service runs and tests without a
Redis server. Default URL: ``sqlite+aiosqlite:///shopsmart.db``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Sequence

from sqlalchemy import Text, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ...errors import StoreUnavailable
from ..models import Base, HashFieldRow, SearchIndexRow, SortedMemberRow
from ..search import TAG, IndexField, parse_query
from .base import DELETE, GET_ALL, PUT, VERBS, BatchOp, OpResult

logger = logging.getLogger(__name__)


def _to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


_UPSERT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class SqlBackend:
    """`KeyValueBackend` on an `AsyncEngine`."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def connect(cls, url: str) -> "SqlBackend":
        return cls(create_async_engine(url, future=True))

    async def create_all(self) -> None:
        """Create the tables (idempotent)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def _session(self, op: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions() as s:
                async with s.begin():
                    yield s
        except SQLAlchemyError as exc:
            logger.error("sql %s failed: %s", op, exc)
            raise StoreUnavailable(f"sql {op} failed: {exc}") from exc

    async def _upsert(
        self, s: AsyncSession, model: Any, rows: List[Dict[str, Any]], keys: Sequence[str], column: str
    ) -> None:
        """INSERT ... ON CONFLICT DO UPDATE, so concurrent writers to a new
        key both succeed and the last one wins."""
        insert = _UPSERT_INSERTS.get(self.engine.dialect.name)
        if insert is None:
            # no native upsert for this dialect
            for row in rows:
                await s.merge(model(**row))
            return
        stmt = insert(model).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(keys), set_={column: getattr(stmt.excluded, column)}
        )
        await s.execute(stmt)

    # ---- hashes ---------------------------------------------------------
    async def _hset(self, s: AsyncSession, key: str, mapping: Mapping[str, Any]) -> int:
        if not mapping:
            return 0
        existing = set(
            (await s.scalars(select(HashFieldRow.field).where(HashFieldRow.key == key))).all()
        )
        rows = [{"key": key, "field": name, "value": _to_str(v)} for name, v in mapping.items()]
        await self._upsert(s, HashFieldRow, rows, ("key", "field"), "value")
        return len(set(mapping) - existing)

    async def _hgetall(self, s: AsyncSession, key: str) -> Dict[str, str]:
        rows = await s.execute(
            select(HashFieldRow.field, HashFieldRow.value).where(HashFieldRow.key == key)
        )
        return {f: v for f, v in rows}

    async def _delete(self, s: AsyncSession, keys: Sequence[str]) -> int:
        found = set(
            (
                await s.scalars(
                    select(HashFieldRow.key).where(HashFieldRow.key.in_(keys)).distinct()
                )
            ).all()
        )
        found |= set(
            (
                await s.scalars(
                    select(SortedMemberRow.key).where(SortedMemberRow.key.in_(keys)).distinct()
                )
            ).all()
        )
        await s.execute(delete(HashFieldRow).where(HashFieldRow.key.in_(keys)))
        await s.execute(delete(SortedMemberRow).where(SortedMemberRow.key.in_(keys)))
        return len(found)

    async def hset(self, key: str, mapping: Mapping[str, Any]) -> int:
        async with self._session("hset") as s:
            return await self._hset(s, key, mapping)

    async def hgetall(self, key: str) -> Dict[str, str]:
        async with self._session("hgetall") as s:
            return await self._hgetall(s, key)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        async with self._session("del") as s:
            return await self._delete(s, keys)

    async def scan_keys(self, prefix: str) -> List[str]:
        pattern = f"{prefix}:"
        async with self._session("scan") as s:
            hashes = await s.scalars(
                select(HashFieldRow.key)
                .where(HashFieldRow.key.startswith(pattern, autoescape=True))
                .distinct()
            )
            sets = await s.scalars(
                select(SortedMemberRow.key)
                .where(SortedMemberRow.key.startswith(pattern, autoescape=True))
                .distinct()
            )
            return sorted(set(hashes.all()) | set(sets.all()))

    # ---- sorted sets ----------------------------------------------------
    async def zadd(self, key: str, member: str, score: float) -> None:
        async with self._session("zadd") as s:
            await self._upsert(
                s,
                SortedMemberRow,
                [{"key": key, "member": member, "score": score}],
                ("key", "member"),
                "score",
            )

    async def zrem(self, key: str, member: str) -> int:
        async with self._session("zrem") as s:
            result = await s.execute(
                delete(SortedMemberRow).where(
                    SortedMemberRow.key == key, SortedMemberRow.member == member
                )
            )
            return result.rowcount

    async def zrange_desc(self, key: str) -> List[str]:
        # same tie-break as ZRANGE ... REV: reverse lexical member order
        async with self._session("zrange") as s:
            members = await s.scalars(
                select(SortedMemberRow.member)
                .where(SortedMemberRow.key == key)
                .order_by(SortedMemberRow.score.desc(), SortedMemberRow.member.desc())
            )
            return list(members.all())

    async def zdrain(self, key: str) -> List[str]:
        # one DELETE ... RETURNING: whatever is deleted is exactly what is returned
        async with self._session("zdrain") as s:
            result = await s.execute(
                delete(SortedMemberRow)
                .where(SortedMemberRow.key == key)
                .returning(SortedMemberRow.member)
            )
            return sorted(result.scalars().all())

    # ---- batches --------------------------------------------------------
    async def execute_batch(self, ops: Sequence[BatchOp]) -> List[OpResult]:
        """Each op commits in its own transaction; one failing op does not
        affect the others."""
        unknown = [op.verb for op in ops if op.verb not in VERBS]
        if unknown:
            raise ValueError(f"unknown batch verb {unknown[0]!r}")

        results: List[OpResult] = []
        for op in ops:
            try:
                async with self._session(op.verb) as s:
                    if op.verb == PUT:
                        value: Any = await self._hset(s, op.key, op.args[0])
                    elif op.verb == GET_ALL:
                        value = await self._hgetall(s, op.key)
                    else:
                        value = await self._delete(s, [op.key])
            except StoreUnavailable as exc:
                results.append(OpResult(error=exc))
            else:
                results.append(OpResult(value=value))
        return results

    # ---- search ---------------------------------------------------------
    async def ft_create(self, index: str, prefix: str, schema: Sequence[IndexField]) -> None:
        async with self._session("ft.create") as s:
            if await s.get(SearchIndexRow, index) is not None:
                raise ValueError("Index already exists")
            s.add(
                SearchIndexRow(
                    name=index, prefix=prefix, fields=[[f.name, f.kind] for f in schema]
                )
            )

    async def ft_drop(self, index: str) -> None:
        async with self._session("ft.dropindex") as s:
            row = await s.get(SearchIndexRow, index)
            if row is None:
                raise LookupError("Unknown Index name")
            await s.delete(row)

    async def ft_search(self, index: str, query: str, offset: int, limit: int) -> List[Any]:
        clauses = parse_query(query)
        async with self._session("ft.search") as s:
            row = await s.get(SearchIndexRow, index)
            if row is None:
                raise LookupError(f"{index}: no such index")
            fields = {name for name, _ in row.fields}
            stmt = select(HashFieldRow.key).where(
                HashFieldRow.key.startswith(row.prefix, autoescape=True)
            )
            for c in clauses:
                if c.field not in fields:
                    raise ValueError(f"Unknown field `{c.field}`")
                value = func.lower(HashFieldRow.value, type_=Text)
                sub = select(HashFieldRow.key).where(HashFieldRow.field == c.field)
                if c.kind == TAG:
                    sub = sub.where(value == c.value.lower())
                else:
                    sub = sub.where(value.contains(c.value.lower(), autoescape=True))
                stmt = stmt.where(HashFieldRow.key.in_(sub))
            keys = sorted(set((await s.scalars(stmt.distinct())).all()))

            reply: List[Any] = [len(keys)]
            for key in keys[offset : offset + limit]:
                flat: List[str] = []
                for f, v in (await self._hgetall(s, key)).items():
                    flat.extend((f, v))
                reply.extend((key, flat))
            return reply

    async def close(self) -> None:
        await self.engine.dispose()
