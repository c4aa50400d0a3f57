"""Runtime configuration, read from the environment (and ``.env``)."""

from __future__ import annotations

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    backend: Literal["redis", "sql"] = "sql"

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_username: Optional[str] = None
    redis_password: Optional[str] = None

    database_url: str = "sqlite+aiosqlite:///shopsmart.db"

    auth_secret: str = "dev-secret"
    session_cookie: str = "shopsmart"
    rate_limit_max_requests: int = 5

    llm_base_url: str = "https://api.openai.com/v1"
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"

    port: int = 3000
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        env = os.environ
        values = {
            "backend": env.get("SHOPSMART_BACKEND"),
            "redis_host": env.get("REDIS_HOST"),
            "redis_port": env.get("REDIS_PORT"),
            "redis_username": env.get("REDIS_USERNAME"),
            "redis_password": env.get("REDIS_PASSWORD"),
            "database_url": env.get("DATABASE_URL"),
            "auth_secret": env.get("AUTH_SECRET"),
            "rate_limit_max_requests": env.get("RATE_LIMIT_MAX_REQUESTS"),
            "llm_base_url": env.get("LLM_BASE_URL"),
            "llm_api_key": env.get("LLM_API_KEY"),
            "llm_model": env.get("LLM_MODEL"),
            "port": env.get("PORT"),
            "log_level": env.get("LOG_LEVEL"),
            "debug": env.get("SHOPSMART_DEBUG"),
        }
        settings = cls(**{k: v for k, v in values.items() if v not in (None, "")})
        if "AUTH_SECRET" not in env and not settings.debug:
            raise ValueError("AUTH_SECRET is required (set SHOPSMART_DEBUG=1 for local use)")
        return settings
