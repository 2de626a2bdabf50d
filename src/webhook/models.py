"""Data models for the webhook relay pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    """Classification of an inbound WhatsApp delivery."""

    STATUS = "status"
    ECHO = "echo"
    MESSAGE = "message"


@dataclass(frozen=True)
class WebhookResponse:
    """Plain-text response returned to the calling platform."""

    text: str
    status_code: int


FORBIDDEN = WebhookResponse(text="Forbidden", status_code=403)
BAD_JSON = WebhookResponse(text="Bad JSON", status_code=400)
DROPPED_STATUS = WebhookResponse(text="dropped status", status_code=200)
DROPPED_ECHO = WebhookResponse(text="dropped echo", status_code=200)
FORWARDED = WebhookResponse(text="ok", status_code=200)
UPSTREAM_UNREACHABLE = WebhookResponse(text="n8n unreachable", status_code=502)
