#!/usr/bin/env python3
"""Run the shopsmart HTTP server with settings from the environment / ``.env``."""

from __future__ import annotations

from typing import Optional

import uvicorn

from .config import Settings
from .logging_config import configure_logging
from .runtime import create_app


def main(host: str = "0.0.0.0", port: Optional[int] = None) -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    app = create_app(settings, debug=settings.debug)
    uvicorn.run(app, host=host, port=port or settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
