"""Webhook relay pipeline — WhatsApp deliveries to n8n.

Pipeline stages:
1. Parse the raw body as JSON (400 on failure)
2. Classify the envelope (status / echo / message)
3. Forward genuine messages, unmodified, to n8n via httpx
4. Log one relay event per outcome

A single forwarding attempt is made. Whatever status n8n answers with,
the platform gets 200; only a transport failure surfaces as 502.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from src.models import RelayEvent, RelayOutcome
from src.webhook.models import (
    BAD_JSON,
    DROPPED_ECHO,
    DROPPED_STATUS,
    FORWARDED,
    UPSTREAM_UNREACHABLE,
    EventKind,
    WebhookResponse,
)

if TYPE_CHECKING:
    from src.audit.logger import RelayEventLogger
    from src.webhook.whatsapp import WhatsAppRelay

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON and cannot be re-serialized for n8n.
    raise ValueError(f"non-standard JSON constant: {name}")


class WebhookRelayPipeline:
    """Parses, triages and forwards WhatsApp webhook deliveries."""

    def __init__(
        self,
        whatsapp: WhatsAppRelay,
        upstream_url: str,
        timeout: float = 30.0,
        event_logger: RelayEventLogger | None = None,
    ) -> None:
        self._whatsapp = whatsapp
        self._upstream_url = upstream_url
        self._timeout = timeout
        self._events = event_logger

    async def relay(
        self, body: bytes, content_length: str | None = None,
    ) -> WebhookResponse:
        """Run the relay pipeline for one POSTed delivery."""

        # Stage 1: Parse
        try:
            payload = json.loads(body, parse_constant=_reject_constant)
        except (ValueError, RecursionError):
            logger.info("POST rejected: body is not valid JSON")
            self._log(RelayOutcome.BAD_JSON, content_length=content_length)
            return BAD_JSON
        logger.info("POST payload length: %s", content_length)

        # Stage 2: Classify
        kind, sender = self._whatsapp.classify(payload)
        if kind == EventKind.STATUS:
            logger.info("drop: status event")
            self._log(RelayOutcome.DROPPED_STATUS, content_length=content_length)
            return DROPPED_STATUS
        if kind == EventKind.ECHO:
            logger.info("drop: echo from own number %s", sender)
            self._log(
                RelayOutcome.DROPPED_ECHO,
                sender=sender,
                content_length=content_length,
            )
            return DROPPED_ECHO

        # Stage 3: Forward
        try:
            upstream_status = await self._forward_to_upstream(payload)
        except httpx.RequestError as exc:
            logger.error("ERROR forwarding to n8n: %r", exc)
            self._log(
                RelayOutcome.FORWARD_FAILED,
                sender=sender,
                content_length=content_length,
                details={"error": type(exc).__name__},
            )
            return UPSTREAM_UNREACHABLE

        # Stage 4: Log; n8n's status is recorded, not inspected
        logger.info(
            "forward to n8n -> %s status: %d", self._upstream_url, upstream_status,
        )
        self._log(
            RelayOutcome.FORWARDED,
            sender=sender,
            upstream_status=upstream_status,
            content_length=content_length,
        )
        return FORWARDED

    async def _forward_to_upstream(self, payload: Any) -> int:
        """POST the original envelope to n8n and return its status code."""
        headers = {"Content-Type": "application/json"}
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                self._upstream_url,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
            return resp.status_code

    def _log(self, outcome: RelayOutcome, **fields: Any) -> None:
        if self._events:
            self._events.log(RelayEvent(method="POST", outcome=outcome, **fields))
