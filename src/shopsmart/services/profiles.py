"""Profiles (owned by a user) and the dietary preferences hung off them."""

from __future__ import annotations

from typing import List

from ..core.engine import RecordEngine
from ..core.record import PREFERENCE_TEMPLATE, Preferences, Profile
from ..persistence.keys import build_key

PROFILES = "profiles"
PREFERENCES = "preferences"


def preferences_key(profile_id: str) -> str:
    return build_key(PROFILES, PREFERENCES, profile_id)


class ProfileService:
    def __init__(self, engine: RecordEngine):
        self.engine = engine
        self.store = engine.store

    async def create(self, owner_id: str, name: str) -> Profile:
        record = await self.engine.create_owned(PROFILES, owner_id, {"name": name})
        return Profile.from_fields(record)

    async def list(self, owner_id: str) -> List[Profile]:
        return [Profile.from_fields(r) for r in await self.engine.list_owned(PROFILES, owner_id)]

    async def get(self, owner_id: str, profile_id: str) -> Profile:
        return Profile.from_fields(await self.engine.fetch_owned(PROFILES, owner_id, profile_id))

    async def delete(self, owner_id: str, profile_id: str) -> None:
        await self.engine.delete_owned(PROFILES, owner_id, profile_id)
        await self.store.delete(preferences_key(profile_id))

    async def delete_all(self, owner_id: str) -> int:
        profiles = await self.list(owner_id)
        deleted = await self.engine.delete_all_owned(PROFILES, owner_id)
        if profiles:
            await self.store.delete_many([preferences_key(p.id) for p in profiles])
        return deleted

    # ---- preferences ----------------------------------------------------
    async def set_preferences(
        self,
        owner_id: str,
        profile_id: str,
        lifestyle: str,
        allergen: str,
        other: str = "",
    ) -> Preferences:
        await self.get(owner_id, profile_id)
        prefs = Preferences(lifestyle=lifestyle, allergen=allergen, other=other)
        await self.store.put(preferences_key(profile_id), prefs.model_dump())
        return prefs

    async def get_preferences(self, owner_id: str, profile_id: str) -> Preferences:
        await self.get(owner_id, profile_id)
        return await self.read_preferences(profile_id)

    async def read_preferences(self, profile_id: str) -> Preferences:
        """Stored preferences, or the empty template. No ownership check."""
        fields = await self.store.get_all(preferences_key(profile_id))
        if not fields:
            return PREFERENCE_TEMPLATE
        return Preferences.model_validate(fields)
