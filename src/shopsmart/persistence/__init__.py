"""Storage layers under the record engine: keys, record hashes, owner indexes, search."""

from .owner_index import OwnerIndex
from .search import IndexField, SearchAdapter, SearchPage
from .store import RecordStore

__all__ = ["IndexField", "OwnerIndex", "RecordStore", "SearchAdapter", "SearchPage"]
