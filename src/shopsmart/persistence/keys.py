"""
Composite key shapes. Every other module builds keys through here so the
engine, the owner index and the search layer always agree on layout.

    users:chats:<ownerId>      owner index (sorted set)
    chats:<chatId>             primary key (hash)
"""

from __future__ import annotations

DELIMITER = ":"
OWNER_COLLECTION = "users"


def build_key(*segments: str) -> str:
    return DELIMITER.join(str(s) for s in segments)


def split_key(key: str) -> list[str]:
    return key.split(DELIMITER)


def primary_key(collection: str, record_id: str) -> str:
    return build_key(collection, record_id)


def owner_index_key(collection: str, owner_id: str) -> str:
    return build_key(OWNER_COLLECTION, collection, owner_id)
