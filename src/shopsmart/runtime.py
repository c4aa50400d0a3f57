"""
shopsmart.runtime  ──  build the FastAPI app around one explicit service graph.

Usage pattern
-------------
    from shopsmart.runtime import create_app
    from shopsmart.config import Settings

    app = create_app(Settings.from_env())

Tests pass their own ``backend`` and ``assistant`` so nothing touches Redis
or the model provider.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware

from .api import ROUTERS, install_error_handlers
from .assistant import Assistant, AssistantClient
from .bootstrap import build_backend, init_shopsmart
from .config import Settings
from .persistence.backends import KeyValueBackend

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings,
    *,
    backend: Optional[KeyValueBackend] = None,
    assistant: Optional[Assistant] = None,
    **fastapi_kwargs: Any,
) -> FastAPI:
    """
    One-liner for the web service. The backend is opened (and closed) by
    the app's lifespan; services end up on ``app.state.services``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        kv = backend or build_backend(settings)
        client = assistant
        owned_client = None
        if client is None:
            owned_client = AssistantClient(
                settings.llm_base_url, settings.llm_model, settings.llm_api_key
            )
            client = owned_client

        app.state.services = await init_shopsmart(
            kv, max_requests=settings.rate_limit_max_requests
        )
        app.state.assistant = client
        logger.info("shopsmart ready (backend=%s)", type(kv).__name__)
        try:
            yield
        finally:
            if owned_client is not None:
                await owned_client.aclose()
            await kv.close()

    app = FastAPI(title="shopsmart", lifespan=lifespan, **fastapi_kwargs)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.auth_secret,
        session_cookie=settings.session_cookie,
        same_site="lax",
    )
    install_error_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/", response_class=PlainTextResponse)
    async def health() -> str:
        return "OK"

    return app
