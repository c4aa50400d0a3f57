"""
Search adapter: a tiny filter language on top of RediSearch.

A filter is a plain mapping. Each ``field -> value`` pair becomes one clause
and clauses are ANDed:

    {"email": "a@b.com"}  ➜  @email:{a\\@b\\.com}

The SQL backend emulates ``FT.SEARCH`` by parsing the same query string back
with `parse_query`, and both backends answer in the RediSearch reply shape so
`parse_search_reply` is the single deserializer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence

from .keys import build_key

if TYPE_CHECKING:
    from .backends.base import KeyValueBackend

logger = logging.getLogger(__name__)

INDEX_SUFFIX = "idx"
MAX_SEARCH_RESULTS = 1000

TAG = "TAG"
TEXT = "TEXT"

# RediSearch tag tokenizer separators; all must be backslash-escaped.
_TAG_SPECIAL = set(",.<>{}[]\"':;!@#$%^&*()-+=~|/\\ ")

_CLAUSE_RE = re.compile(r"@(?P<field>\w+):(?:\{(?P<tag>(?:\\.|[^}])*)\}|(?P<text>(?:\\.|\S)+))")


@dataclass(frozen=True)
class IndexField:
    name: str
    kind: str = TAG

    def as_args(self) -> List[str]:
        return [self.name, self.kind]


@dataclass(frozen=True)
class Clause:
    field: str
    value: str
    kind: str = TAG


@dataclass
class SearchPage:
    total: int = 0
    records: List[Dict[str, str]] = field(default_factory=list)


def index_name(collection: str) -> str:
    return build_key(collection, INDEX_SUFFIX)


def escape_tag(value: str) -> str:
    return "".join("\\" + ch if ch in _TAG_SPECIAL else ch for ch in value)


def unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def build_query(filters: Mapping[str, Any], schema: Sequence[IndexField] = ()) -> str:
    """Render a filter mapping as a RediSearch query (``*`` when empty)."""
    if not filters:
        return "*"
    kinds = {f.name: f.kind for f in schema}
    parts = []
    for name, value in filters.items():
        if kinds.get(name, TAG) == TEXT:
            parts.append(f"@{name}:{escape_tag(str(value))}")
        else:
            parts.append(f"@{name}:{{{escape_tag(str(value))}}}")
    return " ".join(parts)


def parse_query(query: str) -> List[Clause]:
    """Inverse of `build_query`; raises ValueError on anything else."""
    query = query.strip()
    if query in ("", "*"):
        return []
    clauses: List[Clause] = []
    pos = 0
    for m in _CLAUSE_RE.finditer(query):
        if query[pos : m.start()].strip():
            raise ValueError(f"Syntax error in query: {query!r}")
        pos = m.end()
        if m.group("tag") is not None:
            clauses.append(Clause(m.group("field"), unescape(m.group("tag")), TAG))
        else:
            clauses.append(Clause(m.group("field"), unescape(m.group("text")), TEXT))
    if query[pos:].strip() or not clauses:
        raise ValueError(f"Syntax error in query: {query!r}")
    return clauses


def _decode(v: Any) -> str:
    return v.decode() if isinstance(v, bytes) else str(v)


def parse_search_reply(reply: Sequence[Any]) -> SearchPage:
    """
    Reply layout::

        [total, key1, [f, v, f, v, ...], key2, [...], ...]
    """
    if not reply:
        return SearchPage()
    page = SearchPage(total=int(reply[0]))
    for i in range(2, len(reply), 2):
        pairs = reply[i] or []
        page.records.append(
            {_decode(pairs[j]): _decode(pairs[j + 1]) for j in range(0, len(pairs), 2)}
        )
    return page


class SearchAdapter:
    """Query secondary search indexes for lookups the owner index cannot serve."""

    def __init__(self, backend: "KeyValueBackend"):
        self.backend = backend

    async def create_index(self, collection: str, schema: Sequence[IndexField]) -> None:
        await self.backend.ft_create(
            index_name(collection), build_key(collection, ""), list(schema)
        )

    async def drop_index(self, collection: str) -> bool:
        """Drop an index; False when it did not exist."""
        try:
            await self.backend.ft_drop(index_name(collection))
        except LookupError:
            return False
        return True

    async def search(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        schema: Sequence[IndexField] = (),
        offset: int = 0,
        limit: int = MAX_SEARCH_RESULTS,
    ) -> SearchPage:
        index = index_name(collection)
        query = build_query(filters or {}, schema)
        try:
            reply = await self.backend.ft_search(index, query, offset, limit)
        except (ValueError, LookupError) as exc:
            # malformed query or unknown index
            logger.warning("Invalid search request for index: %s, query: %s (%s)", index, query, exc)
            return SearchPage()
        return parse_search_reply(reply)
