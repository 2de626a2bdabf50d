"""Relay event logger: one JSON line per relay decision on the log stream."""

from __future__ import annotations

import logging

from src.models import RelayEvent, RelayOutcome

EVENT_LOGGER_NAME = "relay.events"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a timestamped root handler. Safe to call more than once."""
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT, force=True)


class RelayEventLogger:
    """Structured logger for relay decisions.

    Events are serialized as compact JSON and handed to the stdlib
    logging stream; nothing is written to disk by the relay itself.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(EVENT_LOGGER_NAME)

    def log(self, event: RelayEvent) -> None:
        line = event.model_dump_json(exclude_none=True)
        if event.outcome == RelayOutcome.FORWARD_FAILED:
            self._logger.error(line)
        else:
            self._logger.info(line)
