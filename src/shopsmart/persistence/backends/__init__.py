"""Key-value backends: Redis for production, SQL for development and tests."""

from .base import BatchOp, KeyValueBackend, OpResult
from .redis_backend import RedisBackend
from .sql_backend import SqlBackend

__all__ = ["BatchOp", "KeyValueBackend", "OpResult", "RedisBackend", "SqlBackend"]
