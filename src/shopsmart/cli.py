"""shopsmart CLI: serve the API, seed data, rebuild the search index."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from .bootstrap import build_backend, init_shopsmart
from .config import Settings
from .logging_config import configure_logging

app = typer.Typer(
    name="shopsmart",
    help="shopsmart: grocery assistant backend.",
    no_args_is_help=True,
)

SEED_TARGETS = ("users", "all")


def _settings() -> Settings:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return settings


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default: $PORT or 3000)"),
) -> None:
    """Run the HTTP server."""
    from .main import main

    main(host=host, port=port)


async def _seed_users(settings: Settings, rows: list) -> int:
    backend = build_backend(settings)
    try:
        services = await init_shopsmart(backend)
        return await services.users.create_many(rows)
    finally:
        await backend.close()


@app.command()
def seed(
    target: str = typer.Argument(..., help="users | all"),
    data: Path = typer.Option(
        Path("data/users.json"), "--data", help='JSON file shaped {"users": [...]}'
    ),
) -> None:
    """Load seed data. Passwords in the file are plain text and get hashed."""
    if target not in SEED_TARGETS:
        typer.echo("Usage: shopsmart seed users|all", err=True)
        raise typer.Exit(2)

    settings = _settings()
    rows = json.loads(data.read_text())["users"]
    typer.echo("Loading user data...")
    errors = asyncio.run(_seed_users(settings, rows))
    typer.echo(f"User data loaded with {errors} errors.")


async def _reindex(settings: Settings) -> None:
    backend = build_backend(settings)
    try:
        services = await init_shopsmart(backend)
        await services.users.rebuild_index()
    finally:
        await backend.close()


@app.command()
def reindex() -> None:
    """Drop and recreate the user search index."""
    settings = _settings()
    typer.echo("Dropping any existing indexes, creating new indexes...")
    asyncio.run(_reindex(settings))
    typer.echo("Created indexes.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
