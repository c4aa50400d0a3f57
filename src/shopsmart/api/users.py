"""User resources. Everything under ``/user/{id}`` needs that user's session."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Request

from ..bootstrap import Services
from ..core.record import User
from ..errors import RecordNotFound, ResultCode, Unauthorized
from ..persistence.keys import primary_key
from ..services import USERS
from .deps import get_services, session_user_id
from .errors import result
from .schemas import EMAIL_PATTERN, Login, SetProfile

router = APIRouter(prefix="/user", tags=["users"])


def _same_user(user_id: str, session_id: str) -> None:
    if user_id != session_id:
        raise Unauthorized(primary_key(USERS, user_id), session_id)


async def _own_user(user_id: str, session_id: str, services: Services) -> User:
    _same_user(user_id, session_id)
    return await services.users.require(user_id)


@router.post("", status_code=201)
async def create_user(body: Login, services: Services = Depends(get_services)):
    await services.users.create(body.email, body.password)
    return result(ResultCode.UserCreated, 201)


@router.get("")
async def list_users(services: Services = Depends(get_services)):
    return [u.public() for u in await services.users.list()]


@router.get("/email/{email}")
async def get_user_by_email(
    email: str = Path(pattern=EMAIL_PATTERN),
    services: Services = Depends(get_services),
):
    user = await services.users.find_by_email(email)
    if user is None:
        raise RecordNotFound(primary_key(USERS, email))
    return user.public()


@router.get("/{user_id}")
async def get_user(user_id: str, services: Services = Depends(get_services)):
    return (await services.users.require(user_id)).public()


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    session_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    _same_user(user_id, session_id)
    if not await services.users.delete(user_id):
        raise RecordNotFound(primary_key(USERS, user_id))
    request.session.clear()
    return result(ResultCode.UserUpdated)


@router.put("/{user_id}/profile")
async def set_user_profile(
    user_id: str,
    body: SetProfile,
    session_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    _same_user(user_id, session_id)
    await services.users.set_profile(user_id, body.profileId)
    return result(ResultCode.UserUpdated)


@router.get("/{user_id}/profile")
async def get_user_profile(
    user_id: str,
    session_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    user = await _own_user(user_id, session_id, services)
    profile = await services.users.get_profile(user)
    return profile.model_dump() if profile else None


@router.get("/{user_id}/preferences")
async def get_user_preferences(
    user_id: str,
    session_id: str = Depends(session_user_id),
    services: Services = Depends(get_services),
):
    user = await _own_user(user_id, session_id, services)
    return (await services.users.get_preferences(user)).model_dump()
