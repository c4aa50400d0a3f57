"""FastAPI dependencies: service lookup, session user, rate limit."""

from __future__ import annotations

from fastapi import Depends, Request

from ..assistant import Assistant
from ..bootstrap import Services
from ..errors import NotAuthenticated, ResultCode, ResultError


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_assistant(request: Request) -> Assistant:
    return request.app.state.assistant


def session_user_id(request: Request) -> str:
    user_id = request.session.get("userId")
    if not user_id:
        raise NotAuthenticated("Invalid session")
    return user_id


async def rate_limit(request: Request, services: Services = Depends(get_services)) -> None:
    client = request.client.host if request.client else "unknown"
    if not await services.rate_limiter.hit(client):
        raise ResultError(f"Rate limit exceeded for {client}", ResultCode.RateLimited)
