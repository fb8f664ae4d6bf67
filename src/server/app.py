"""FastAPI application for the inbound text webhook."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from src.config import RelaySettings
from src.relay.dispatcher import RelayDispatcher
from src.relay.mapping import RelayMapping, load_relays_from_file
from src.relay.models import FORM_DEFAULTS, apply_defaults
from src.relay.pipeline import RelayPipeline

logger = logging.getLogger(__name__)

HEALTH_PATH = "/.well-known/ruok"
ACK_BODY = "ok \n"
HEALTH_BODY = "ok\n"

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]


def create_app_from_env(settings: RelaySettings | None = None) -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables.

    Raises ConfigError or RelayMappingError when the service cannot start.
    """
    settings = settings or RelaySettings.from_env()
    settings.warn_if_degraded()
    relays = load_relays_from_file(settings.relays_path)
    return create_app(relays, settings)


def create_app(
    relays: RelayMapping,
    settings: RelaySettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the relay app around an already-loaded relay mapping."""
    settings = settings or RelaySettings()
    pipeline = RelayPipeline(
        relays=relays,
        upstream_url=settings.upstream_url,
        token=settings.token,
        account_id=settings.account_id,
        timeout=settings.delivery_timeout,
        transport=transport,
    )
    dispatcher = RelayDispatcher(pipeline)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "starting text-relay relays=%d log_only=%s", len(relays), pipeline.log_only,
        )
        yield
        await dispatcher.drain(timeout=settings.delivery_timeout)

    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None, lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.dispatcher = dispatcher

    @app.api_route(HEALTH_PATH, methods=_ALL_METHODS, response_class=PlainTextResponse)
    async def health() -> str:
        return HEALTH_BODY

    @app.api_route("/{path:path}", methods=_ALL_METHODS, response_class=PlainTextResponse)
    async def receive_text(request: Request, path: str) -> str:
        fields = await _read_fields(request)
        message = apply_defaults(fields)
        logger.info(
            "received text from=%s to=%s type=%s msg=%r",
            message.source, message.destination, message.type, message.message,
        )
        dispatcher.submit(message)
        return ACK_BODY

    return app


async def _read_fields(request: Request) -> dict[str, str]:
    """Collect known fields from the form body, falling back to the query string.

    The first value wins when a field is repeated.
    """
    fields: dict[str, str] = {}
    for name in FORM_DEFAULTS:
        values = request.query_params.getlist(name)
        if values:
            fields[name] = values[0]

    try:
        form = await request.form()
    except Exception as exc:  # undecodable body; query fields and defaults still apply
        logger.error("cannot parse form data: %s", exc)
        return fields

    for name in FORM_DEFAULTS:
        values = [v for v in form.getlist(name) if isinstance(v, str)]
        if values:
            fields[name] = values[0]
    return fields
