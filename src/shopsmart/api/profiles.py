"""Profiles of the logged-in user and their preferences."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..bootstrap import Services
from ..errors import ResultCode
from .deps import get_services, session_user_id
from .errors import result
from .schemas import CreateProfile, PreferencesIn

router = APIRouter(prefix="/profile", tags=["profiles"])


@router.post("", status_code=201)
async def create_profile(
    body: CreateProfile,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    profile = await services.profiles.create(user_id, body.profileName)
    return profile.model_dump()


@router.get("")
async def list_profiles(
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    return [p.model_dump() for p in await services.profiles.list(user_id)]


@router.get("/{profile_id}")
async def get_profile(
    profile_id: str,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    return (await services.profiles.get(user_id, profile_id)).model_dump()


@router.delete("/{profile_id}", response_class=PlainTextResponse)
async def delete_profile(
    profile_id: str,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    await services.profiles.delete(user_id, profile_id)
    return "OK"


@router.put("/{profile_id}/preferences")
async def set_preferences(
    profile_id: str,
    body: PreferencesIn,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    await services.profiles.set_preferences(
        user_id, profile_id, body.lifestyle, body.allergen, body.other
    )
    return result(ResultCode.ProfileUpdated)


@router.get("/{profile_id}/preferences")
async def get_preferences(
    profile_id: str,
    user_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    return (await services.profiles.get_preferences(user_id, profile_id)).model_dump()
