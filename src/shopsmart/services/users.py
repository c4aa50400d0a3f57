"""Users: the owners of every other collection."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence

from ..core.engine import RecordEngine
from ..core.record import PREFERENCE_TEMPLATE, Preferences, Profile, User
from ..errors import AccessDenied, RecordNotFound, ResultCode, ResultError
from ..persistence.keys import primary_key
from ..persistence.search import TAG, TEXT, IndexField, SearchAdapter
from .chats import CHATS
from .passwords import hash_password, verify_password
from .profiles import ProfileService

logger = logging.getLogger(__name__)

USERS = "users"
USER_SCHEMA = (IndexField("email", TAG), IndexField("username", TEXT))


class UserService:
    def __init__(
        self,
        engine: RecordEngine,
        search: SearchAdapter,
        profiles: ProfileService,
    ):
        self.engine = engine
        self.search = search
        self.profiles = profiles

    async def ensure_index(self) -> None:
        try:
            await self.search.create_index(USERS, USER_SCHEMA)
        except ValueError:
            logger.debug("search index for %s already exists", USERS)

    async def rebuild_index(self) -> None:
        await self.search.drop_index(USERS)
        await self.search.create_index(USERS, USER_SCHEMA)

    # ---- reads ----------------------------------------------------------
    async def find_by_email(self, email: str) -> Optional[User]:
        page = await self.search.search(USERS, {"email": email}, schema=USER_SCHEMA, limit=1)
        if not page.records:
            return None
        return User.from_fields(page.records[0])

    async def get(self, user_id: str) -> Optional[User]:
        record = await self.engine.get(USERS, user_id)
        return User.from_fields(record) if record else None

    async def require(self, user_id: str) -> User:
        user = await self.get(user_id)
        if user is None:
            raise RecordNotFound(primary_key(USERS, user_id))
        return user

    async def list(self) -> List[User]:
        return [User.from_fields(r) for r in await self.engine.list_all(USERS)]

    # ---- writes ---------------------------------------------------------
    async def create(self, email: str, password: str) -> User:
        if await self.find_by_email(email) is not None:
            raise ResultError(f"E-mail {email} already in use", ResultCode.UserAlreadyExists)
        digest = await asyncio.to_thread(hash_password, password)
        record = await self.engine.create(USERS, {"email": email, "password": digest})
        return User.from_fields(record)

    async def create_many(self, rows: Sequence[Mapping[str, Any]]) -> int:
        """Bulk load users with plain-text passwords; returns the error count."""
        hashed = []
        for row in rows:
            digest = await asyncio.to_thread(hash_password, row["password"])
            hashed.append({**row, "password": digest})
        return await self.engine.create_many(USERS, hashed)

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        user = await self.find_by_email(email)
        if user is None:
            return None
        if not await asyncio.to_thread(verify_password, password, user.password):
            return None
        return user

    async def delete(self, user_id: str) -> bool:
        """Delete a user and everything they own."""
        if await self.get(user_id) is None:
            return False
        profiles = await self.profiles.delete_all(user_id)
        chats = await self.engine.delete_all_owned(CHATS, user_id)
        await self.engine.delete(USERS, user_id)
        logger.info("deleted user %s with %d profiles and %d chats", user_id, profiles, chats)
        return True

    # ---- profile + preferences ------------------------------------------
    async def set_profile(self, user_id: str, profile_id: str) -> User:
        await self.require(user_id)
        profile = await self.profiles.get(user_id, profile_id)
        record = await self.engine.update(USERS, user_id, {"profileId": profile.id})
        return User.from_fields(record)

    async def get_profile(self, user: User) -> Optional[Profile]:
        if not user.profileId:
            return None
        try:
            return await self.profiles.get(user.id, user.profileId)
        except AccessDenied:
            # profile deleted since it was selected
            return None

    async def get_preferences(self, user: User) -> Preferences:
        profile = await self.get_profile(user)
        if profile is None:
            return PREFERENCE_TEMPLATE
        return await self.profiles.read_preferences(profile.id)
