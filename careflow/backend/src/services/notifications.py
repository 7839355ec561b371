"""Notification dispatch for committed invoice transitions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

LOGGER = structlog.get_logger(__name__)

Sender = Callable[[str, dict[str, Any]], None]


def _log_sender(event: str, payload: dict[str, Any]) -> None:
    LOGGER.info("notification_dispatched", notification_event=event, **payload)


_senders: list[Sender] = [_log_sender]


def register_sender(sender: Sender) -> None:
    """Add a delivery channel invoked for every notification."""

    _senders.append(sender)


def unregister_sender(sender: Sender) -> None:
    if sender in _senders:
        _senders.remove(sender)


def notify(event: str, payload: dict[str, Any]) -> bool:
    """Deliver a notification after the triggering transaction has committed.

    Delivery is best-effort: failures are logged and reported through the
    return value, never raised.
    """

    delivered = True
    for sender in list(_senders):
        try:
            sender(event, payload)
        except Exception as exc:  # noqa: BLE001 - notification failures are non-fatal
            delivered = False
            LOGGER.warning(
                "notification_delivery_failed",
                notification_event=event,
                error=str(exc),
            )
    return delivered


__all__ = ["notify", "register_sender", "unregister_sender"]
