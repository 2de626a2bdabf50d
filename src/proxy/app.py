"""FastAPI application serving the WhatsApp webhook relay."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.datastructures import QueryParams

from src.audit.logger import RelayEventLogger, configure_logging
from src.models import RelayConfig, RelayEvent, RelayOutcome
from src.webhook.models import WebhookResponse
from src.webhook.relay import WebhookRelayPipeline
from src.webhook.whatsapp import WhatsAppRelay

logger = logging.getLogger(__name__)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = RelayConfig.from_env()
    configure_logging(config.log_level)
    return create_app(config, RelayEventLogger())


def create_app(
    config: RelayConfig,
    event_logger: RelayEventLogger | None = None,
) -> FastAPI:
    """Create the relay app for an immutable config."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    whatsapp = WhatsAppRelay(
        verify_token=config.verify_token,
        business_phone_msisdn=config.business_phone_msisdn,
    )
    pipeline = WebhookRelayPipeline(
        whatsapp=whatsapp,
        upstream_url=config.n8n_url,
        timeout=config.forward_timeout,
        event_logger=event_logger,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(config.webhook_path)
    async def whatsapp_verify(request: Request) -> Response:
        params = _first_values(request.query_params)
        result = whatsapp.handle_verification(params)
        accepted = result.status_code == 200
        logger.info(
            "GET handshake: token=%s challenge=%s accepted=%s",
            "present" if "hub.verify_token" in params else "absent",
            params.get("hub.challenge"),
            accepted,
        )
        if event_logger:
            event_logger.log(RelayEvent(
                method="GET",
                outcome=(
                    RelayOutcome.HANDSHAKE_ACCEPTED
                    if accepted else RelayOutcome.HANDSHAKE_REJECTED
                ),
            ))
        return _to_response(result)

    @app.post(config.webhook_path)
    async def whatsapp_webhook(request: Request) -> Response:
        body = await request.body()
        result = await pipeline.relay(
            body, content_length=request.headers.get("content-length"),
        )
        return _to_response(result)

    logger.info(
        "WhatsApp relay ready on %s, forwarding to %s",
        config.webhook_path, config.n8n_url,
    )
    return app


def _first_values(params: QueryParams) -> dict[str, str]:
    """Collapse repeated query keys, keeping the first occurrence."""
    first: dict[str, str] = {}
    for key, value in params.multi_items():
        first.setdefault(key, value)
    return first


def _to_response(result: WebhookResponse) -> Response:
    return PlainTextResponse(content=result.text, status_code=result.status_code)
