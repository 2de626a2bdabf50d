"""Shared test fixtures for the WhatsApp → n8n relay."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.audit.logger import RelayEventLogger
from src.models import RelayConfig

BUSINESS_PHONE = "491701234567"
CUSTOMER_PHONE = "491709999999"
VERIFY_TOKEN = "deinVerifyToken"
N8N_URL = "https://app.n8n.cloud/webhook/wa-in"


@pytest.fixture
def relay_config() -> RelayConfig:
    return make_relay_config()


@pytest.fixture
def mock_event_logger() -> MagicMock:
    return MagicMock(spec=RelayEventLogger)


# --- Factory functions for test data ---


def make_relay_config(**kwargs: Any) -> RelayConfig:
    """Factory for RelayConfig with sensible defaults."""
    defaults: dict[str, Any] = {
        "n8n_url": N8N_URL,
        "business_phone_msisdn": BUSINESS_PHONE,
        "verify_token": VERIFY_TOKEN,
    }
    defaults.update(kwargs)
    return RelayConfig(**defaults)


def make_message_payload(
    sender: str = CUSTOMER_PHONE,
    text: str = "hello",
) -> dict[str, Any]:
    """A WhatsApp Business webhook carrying one inbound text message."""
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "BUSINESS_ID",
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {
                                "display_phone_number": BUSINESS_PHONE,
                                "phone_number_id": "PHONE_ID",
                            },
                            "contacts": [
                                {"profile": {"name": "Kunde"}, "wa_id": sender},
                            ],
                            "messages": [
                                {
                                    "from": sender,
                                    "id": "wamid.ID",
                                    "timestamp": "1700000000",
                                    "type": "text",
                                    "text": {"body": text},
                                }
                            ],
                        },
                        "field": "messages",
                    }
                ],
            }
        ],
    }


def make_status_payload(status: str = "delivered") -> dict[str, Any]:
    """A WhatsApp Business webhook carrying one delivery status."""
    return {"entry": [{"changes": [{"value": {"statuses": [{"status": status}]}}]}]}


def make_upstream_client(
    status_code: int = 200,
    side_effect: BaseException | None = None,
) -> AsyncMock:
    """Mock for ``httpx.AsyncClient`` usable as an async context manager."""
    client = AsyncMock()
    if side_effect is not None:
        client.post.side_effect = side_effect
    else:
        client.post.return_value = MagicMock(status_code=status_code)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client
