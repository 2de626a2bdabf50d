"""WhatsApp webhook protocol: Meta verification handshake and event triage.

Inbound deliveries wrap their payload as
``entry[0].changes[0].value``. The value carries either ``messages``
(user messages, including echoes of our own outbound messages) or
``statuses`` (sent/delivered/read receipts). Only genuine user messages
are worth relaying.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping
from typing import Any

from src.webhook.models import FORBIDDEN, EventKind, WebhookResponse

logger = logging.getLogger(__name__)


def _first(items: Any) -> Any:
    """First element of a non-empty list, else None."""
    if isinstance(items, list) and items:
        return items[0]
    return None


def _present(value: Any) -> bool:
    """JSON truthiness: arrays and objects count even when empty."""
    if isinstance(value, (list, dict)):
        return True
    return bool(value)


def _field(obj: Any, key: str) -> Any:
    """``obj[key]`` when obj is a JSON object, else None."""
    if isinstance(obj, dict):
        return obj.get(key)
    return None


class WhatsAppRelay:
    """Handshake and classification rules for WhatsApp Business webhooks."""

    def __init__(self, verify_token: str, business_phone_msisdn: str) -> None:
        self._verify_token = verify_token
        self._business_phone = business_phone_msisdn

    def handle_verification(self, params: Mapping[str, str]) -> WebhookResponse:
        """Handle the Meta webhook verification challenge (GET).

        The challenge is echoed verbatim when the token matches and a
        challenge was supplied. ``hub.mode`` is not inspected.
        """
        token = params.get("hub.verify_token")
        challenge = params.get("hub.challenge")
        if token is None or not challenge:
            return FORBIDDEN

        # Constant-time comparison; bytes so non-ASCII tokens don't raise.
        if hmac.compare_digest(token.encode(), self._verify_token.encode()):
            return WebhookResponse(text=challenge, status_code=200)
        return FORBIDDEN

    def change_value(self, payload: Any) -> dict[str, Any] | None:
        """Return ``entry[0].changes[0].value`` or None if any level is absent."""
        entry = _first(_field(payload, "entry"))
        change = _first(_field(entry, "changes"))
        value = _field(change, "value")
        return value if isinstance(value, dict) else None

    def classify(self, payload: Any) -> tuple[EventKind, str | None]:
        """Classify a delivery and return it with the first sender, if known.

        Priority: no messages or any statuses -> STATUS; sender equal to
        our own number -> ECHO; everything else -> MESSAGE.
        """
        value = self.change_value(payload)
        if value is None:
            return EventKind.STATUS, None

        messages = value.get("messages")
        if not _present(messages) or _present(value.get("statuses")):
            return EventKind.STATUS, None

        sender = _field(_first(messages), "from")
        if sender == self._business_phone:
            return EventKind.ECHO, sender
        return EventKind.MESSAGE, sender if isinstance(sender, str) else None
