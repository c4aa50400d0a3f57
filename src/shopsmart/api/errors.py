"""
Exception ➜ response mapping.

Not-found and not-yours share one answer (400 INVALID_CREDENTIALS) so a
client cannot tell whether another user's record exists.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import (
    AccessDenied,
    AssistantUnavailable,
    NotAuthenticated,
    ResultCode,
    ResultError,
    StoreUnavailable,
    message_for,
)

logger = logging.getLogger(__name__)

_STATUS = {
    ResultCode.RateLimited: 429,
    ResultCode.InvalidCredentials: 401,
    ResultCode.UnknownError: 500,
}


def result(code: ResultCode, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    body = {"resultCode": code.value}
    if status_code >= 400:
        body["type"] = "error"
        body["message"] = message or message_for(code) or code.value
    return JSONResponse(body, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation(request: Request, exc: RequestValidationError):
        return result(ResultCode.InvalidSubmission, 400, str(exc.errors()))

    @app.exception_handler(AccessDenied)
    async def _denied(request: Request, exc: AccessDenied):
        logger.info("%s %s denied: %s", request.method, request.url.path, exc)
        return result(ResultCode.InvalidCredentials, 400)

    @app.exception_handler(NotAuthenticated)
    async def _no_session(request: Request, exc: NotAuthenticated):
        return result(ResultCode.InvalidCredentials, 401, str(exc))

    @app.exception_handler(ResultError)
    async def _result(request: Request, exc: ResultError):
        return result(exc.result_code, _STATUS.get(exc.result_code, 400), str(exc))

    @app.exception_handler(StoreUnavailable)
    async def _store(request: Request, exc: StoreUnavailable):
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return result(ResultCode.UnknownError, 503)

    @app.exception_handler(AssistantUnavailable)
    async def _assistant(request: Request, exc: AssistantUnavailable):
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return result(ResultCode.UnknownError, 502)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("%s %s failed", request.method, request.url.path)
        return result(ResultCode.UnknownError, 500)
