"""
Tests for the search filter language and reply parsing.

The adapter is also run against the SQL emulation of FT.SEARCH.
"""

import pytest

from shopsmart.persistence.search import (
    TAG,
    TEXT,
    Clause,
    IndexField,
    SearchAdapter,
    build_query,
    escape_tag,
    index_name,
    parse_query,
    parse_search_reply,
)

SCHEMA = (IndexField("email", TAG), IndexField("username", TEXT))


class TestQueryLanguage:

    def test_empty_filter_matches_everything(self):
        assert build_query({}) == "*"

    def test_email_is_escaped(self):
        assert build_query({"email": "a@b.com"}) == r"@email:{a\@b\.com}"

    def test_clauses_are_anded_with_space(self):
        q = build_query({"email": "x@y.z", "username": "bob"}, SCHEMA)
        assert q == r"@email:{x\@y\.z} @username:bob"

    def test_escape_covers_spaces_and_dashes(self):
        assert escape_tag("a b-c") == r"a\ b\-c"

    def test_parse_is_inverse_of_build(self):
        q = build_query({"email": "first.last+tag@example.com", "username": "Jo Ann"}, SCHEMA)
        assert parse_query(q) == [
            Clause("email", "first.last+tag@example.com", TAG),
            Clause("username", "Jo Ann", TEXT),
        ]

    def test_parse_star(self):
        assert parse_query("*") == []

    @pytest.mark.parametrize("bad", ["@email", "email:{x}", "@email:{x} junk", "((("])
    def test_parse_rejects_garbage(self, bad):
        with pytest.raises(ValueError):
            parse_query(bad)

    def test_index_name(self):
        assert index_name("users") == "users:idx"


class TestReplyParsing:

    def test_empty_reply(self):
        page = parse_search_reply([])
        assert page.total == 0
        assert page.records == []

    def test_reply_with_records(self):
        reply = [2, "users:1", ["id", "1", "email", "a@b.com"], "users:2", ["id", "2"]]
        page = parse_search_reply(reply)
        assert page.total == 2
        assert page.records == [{"id": "1", "email": "a@b.com"}, {"id": "2"}]

    def test_bytes_are_decoded(self):
        page = parse_search_reply([1, b"users:1", [b"id", b"1"]])
        assert page.records == [{"id": "1"}]


class TestSearchAdapter:

    @pytest.mark.asyncio
    async def test_search_by_email(self, backend, store):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        await store.put("users:1", {"id": "1", "email": "a@b.com", "username": "Alice Smith"})
        await store.put("users:2", {"id": "2", "email": "c@d.com", "username": "Bob"})

        page = await search.search("users", {"email": "a@b.com"}, schema=SCHEMA)
        assert page.total == 1
        assert page.records[0]["id"] == "1"

    @pytest.mark.asyncio
    async def test_text_field_matches_substring(self, backend, store):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        await store.put("users:1", {"id": "1", "email": "a@b.com", "username": "Alice Smith"})

        page = await search.search("users", {"username": "smith"}, schema=SCHEMA)
        assert [r["id"] for r in page.records] == ["1"]

    @pytest.mark.asyncio
    async def test_other_collections_are_not_indexed(self, backend, store):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        await store.put("profiles:1", {"id": "1", "email": "a@b.com"})

        page = await search.search("users", {"email": "a@b.com"}, schema=SCHEMA)
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_unknown_index_yields_empty_page(self, backend):
        page = await SearchAdapter(backend).search("nothing", {"email": "a@b.com"})
        assert page.total == 0
        assert page.records == []

    @pytest.mark.asyncio
    async def test_unknown_field_yields_empty_page(self, backend):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        page = await search.search("users", {"nickname": "x"})
        assert page.records == []

    @pytest.mark.asyncio
    async def test_create_twice_raises_value_error(self, backend):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        with pytest.raises(ValueError):
            await search.create_index("users", SCHEMA)

    @pytest.mark.asyncio
    async def test_drop_index(self, backend):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        assert await search.drop_index("users") is True
        assert await search.drop_index("users") is False

    @pytest.mark.asyncio
    async def test_paging(self, backend, store):
        search = SearchAdapter(backend)
        await search.create_index("users", SCHEMA)
        for i in range(5):
            await store.put(f"users:{i}", {"id": str(i), "email": f"u{i}@x.org"})

        page = await search.search("users", {}, schema=SCHEMA, offset=1, limit=2)
        assert page.total == 5
        assert [r["id"] for r in page.records] == ["1", "2"]
