"""Sign-up, login and logout. The session cookie carries ``userId`` and ``email``."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from ..bootstrap import Services
from ..errors import ResultCode, ResultError
from .deps import get_services
from .errors import result
from .schemas import Login

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/signup", status_code=201)
async def signup(body: Login, services: Services = Depends(get_services)):
    await services.users.create(body.email, body.password)
    return result(ResultCode.UserCreated, 201)


@router.post("/login")
async def login(body: Login, request: Request, services: Services = Depends(get_services)):
    user = await services.users.authenticate(body.email, body.password)
    if user is None:
        request.session.clear()
        logger.info("failed login attempt for %s", body.email)
        raise ResultError(f"Failed login attempt for {body.email}.", ResultCode.InvalidCredentials)

    logger.info("login user %s", user.email)
    request.session["userId"] = user.id
    request.session["email"] = user.email
    return result(ResultCode.UserLoggedIn)


@router.delete("/logout", response_class=PlainTextResponse)
async def logout(request: Request):
    email = request.session.get("email")
    request.session.clear()
    if email:
        logger.info("logout user %s", email)
    else:
        logger.info("logout called without a session")
    return "OK"
