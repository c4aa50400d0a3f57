"""
Single entry-point that wires a key-value backend into shopsmart.
Call once, e.g. in the FastAPI lifespan or a CLI command.

Nothing here is global: every layer receives its collaborators explicitly,
so tests (or a second app) can build an isolated stack.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import Settings
from .core.engine import RecordEngine
from .persistence.backends import KeyValueBackend, RedisBackend, SqlBackend
from .persistence.owner_index import OwnerIndex
from .persistence.search import SearchAdapter
from .persistence.store import RecordStore
from .services import ChatService, ProfileService, RateLimiter, UserService
from .services.ratelimit import MAX_REQUESTS


@dataclass
class Services:
    backend: KeyValueBackend
    store: RecordStore
    index: OwnerIndex
    engine: RecordEngine
    search: SearchAdapter
    users: UserService
    profiles: ProfileService
    chats: ChatService
    rate_limiter: RateLimiter


def build_backend(settings: Settings) -> KeyValueBackend:
    if settings.backend == "redis":
        return RedisBackend.connect(
            settings.redis_host,
            settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
        )
    return SqlBackend.connect(settings.database_url)


async def init_shopsmart(
    backend: KeyValueBackend, *, max_requests: int = MAX_REQUESTS
) -> Services:
    """
    Prepare the backend (tables / search index) and build the service
    graph on top of it.
    """
    if isinstance(backend, SqlBackend):
        await backend.create_all()  # ← creates the tables

    store = RecordStore(backend)
    index = OwnerIndex(backend)
    engine = RecordEngine(store, index)
    search = SearchAdapter(backend)
    profiles = ProfileService(engine)
    users = UserService(engine, search, profiles)
    await users.ensure_index()

    return Services(
        backend=backend,
        store=store,
        index=index,
        engine=engine,
        search=search,
        users=users,
        profiles=profiles,
        chats=ChatService(engine),
        rate_limiter=RateLimiter(store, max_requests),
    )
