"""FastAPI application entrypoint.

This module wires the container into an ASGI application. Routes, their
minimum roles and the handlers behind them are declared in
`container.Container.routes`.

Endpoints implemented:
- GET /ping
- POST /login, POST /register, POST /refresh
- POST /users/update_password, POST /users/profile
- GET /contests, GET /contests/{id}, POST /contests, PUT /contests/{id}
- GET /rankings/current, GET /rankings/registration, POST /rankings, GET /rankings
- POST /contest_logs, GET /contest_logs, PUT /contest_logs/{id}, DELETE /contest_logs/{id}
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .config import Settings
from .container import Container

logger = logging.getLogger("contest_tracker.api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build a fully initialized application.

    Raises `StartupError` when the database or the error reporter cannot
    be initialized, so a misconfigured process never serves traffic.
    """
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)
    container = Container(settings)
    container.init()
    return container.app()


app = create_app()


def run():
    """Serve the module-level app on the configured port."""
    settings: Settings = app.state.container.settings
    logger.info("listening on port %s", settings.APP_PORT)
    uvicorn.run(app, host="0.0.0.0", port=settings.APP_PORT)


if __name__ == "__main__":
    run()
