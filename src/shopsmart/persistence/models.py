"""
Tables backing `SqlBackend`: a key-value store laid out relationally.

* hash_fields      one row per (key, field) of a hash
* sorted_members   one row per (key, member) of a sorted set
* search_indexes   RediSearch-style index definitions
"""

from sqlalchemy import JSON, Column, Float, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class HashFieldRow(Base):
    """One field of one hash."""

    __tablename__ = "hash_fields"

    key = Column(String, primary_key=True)
    field = Column(String, primary_key=True)
    value = Column(Text, nullable=False)


class SortedMemberRow(Base):
    """One member of one sorted set."""

    __tablename__ = "sorted_members"

    key = Column(String, primary_key=True)
    member = Column(String, primary_key=True)
    score = Column(Float, nullable=False, index=True)


class SearchIndexRow(Base):
    __tablename__ = "search_indexes"

    name = Column(String, primary_key=True)
    prefix = Column(String, nullable=False)
    fields = Column(JSON, nullable=False)  # [[name, kind], ...]
