"""Application definition for the murmurauth guest access service."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version

import structlog
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from safir.fastapi import ClientRequestError, client_request_error_handler
from safir.logging import configure_uvicorn_logging

from .dependencies.config import config_dependency
from .dependencies.context import context_dependency
from .handlers import guest, internal

__all__ = ["create_app", "create_openapi"]


def create_app(*, load_config: bool = True) -> FastAPI:
    """Create the FastAPI application.

    This is in a function rather than using a global variable so that the
    test suite can recreate the application with a different configuration.

    Parameters
    ----------
    load_config
        If set to `False`, do not try to load the configuration or configure
        Uvicorn logging. This is used for OpenAPI schema generation, where
        constructing the app is required but the configuration won't matter.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        config = config_dependency.config()
        await context_dependency.initialize(config)
        logger = structlog.get_logger("murmurauth")
        logger.debug("Started guest access application")

        yield

        await context_dependency.aclose()

    app = FastAPI(
        title="murmurauth",
        description=(
            "murmurauth authenticates Mumble users against LDAP and issues"
            " time-limited guest logins. This application provides the web"
            " pages used to create and claim guest logins."
        ),
        version=version("murmurauth"),
        tags_metadata=[
            {
                "name": "admin",
                "description": (
                    "Routes for administrators creating guest links."
                ),
            },
            {
                "name": "guest",
                "description": "Routes for guests following a guest link.",
            },
            {
                "name": "internal",
                "description": "Internal routes used by health checks.",
            },
        ],
        lifespan=lifespan,
    )

    # Add all of the routes.
    app.include_router(internal.router)
    app.include_router(guest.router)

    # Load configuration if it is available to us and configure Uvicorn
    # logging.
    if load_config:
        config_dependency.config()
        configure_uvicorn_logging()

    # Handle exceptions descended from ClientRequestError.
    app.exception_handler(ClientRequestError)(client_request_error_handler)

    return app


def create_openapi() -> str:
    """Generate the OpenAPI schema.

    Returns
    -------
    str
        OpenAPI schema as serialized JSON.
    """
    app = create_app(load_config=False)
    schema = get_openapi(
        title=app.title,
        description=app.description,
        version=app.version,
        routes=app.routes,
    )
    return json.dumps(schema)
