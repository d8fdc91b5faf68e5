"""Ledger event notifications."""

from smartledger.notifications.events import (
    AccountCreated,
    EventBus,
    get_event_bus,
    reset_event_bus,
)

__all__ = ["AccountCreated", "EventBus", "get_event_bus", "reset_event_bus"]
