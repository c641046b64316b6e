"""
Event system for off-chain observers of the locker engines.

Engines queue events while a call is in flight and publish them only once
the call has committed, so observers never see events for rolled-back work.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from memberlock.core.logging import get_logger

logger = get_logger(__name__)


class LockerEventType(Enum):
    """Locker event types."""

    # Account events
    DEPOSIT = "deposit"
    DEPOSIT_STABLE = "deposit_stable"
    WITHDRAW = "withdraw"
    TRANSFER = "transfer"

    # Switches
    PAUSED = "paused"
    UNPAUSED = "unpaused"
    UNLOCK_UPDATED = "unlock_updated"

    # Economically sensitive parameters
    START_AND_LOCK_BLOCKS_UPDATED = "start_and_lock_blocks_updated"
    MAX_CAP_UPDATED = "max_cap_updated"
    MAX_CAP_CIRCULATING_BP_UPDATED = "max_cap_circulating_bp_updated"
    CREDIT_MULTIPLIER_UPDATED = "credit_multiplier_updated"
    SPLIT_CONFIGURED = "split_configured"

    # Addresses and collaborators
    TREASURY_UPDATED = "treasury_updated"
    ZAPPER_UPDATED = "zapper_updated"
    SWAP_ROUTER_UPDATED = "swap_router_updated"
    POOL_REGISTRY_UPDATED = "pool_registry_updated"
    CONTRACT_ALLOWLIST_UPDATED = "contract_allowlist_updated"
    TOKENS_RECOVERED = "tokens_recovered"


@dataclass
class LockerEvent:
    """Locker event data structure."""

    event_type: LockerEventType
    source: str
    block: int | None = None
    timestamp: datetime | None = None
    event_id: str | None = None
    data: dict[str, Any] | None = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)
        if self.event_id is None:
            self.event_id = str(uuid4())
        if self.data is None:
            self.data = {}


class EventHandler:
    """Base class for event handlers."""

    def __init__(self, handler_name: str):
        self.handler_name = handler_name
        self.logger = get_logger(f"EventHandler.{handler_name}")

    async def handle(self, event: LockerEvent) -> None:
        """Handle an event. Override in subclasses."""
        raise NotImplementedError


class RecordingEventHandler(EventHandler):
    """Handler that keeps every event it receives, in order."""

    def __init__(self, handler_name: str = "recorder"):
        super().__init__(handler_name)
        self.events: list[LockerEvent] = []

    async def handle(self, event: LockerEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: LockerEventType) -> list[LockerEvent]:
        return [event for event in self.events if event.event_type == event_type]


class EventPublisher:
    """Event publisher for locker notifications."""

    def __init__(self, max_history: int = 1000):
        self.logger = get_logger(self.__class__.__name__)
        self._handlers: dict[LockerEventType, list[EventHandler]] = {}
        self._global_handlers: list[EventHandler] = []
        self._event_history: list[LockerEvent] = []
        self._max_history = max_history

    def subscribe(self, event_type: LockerEventType, handler: EventHandler) -> None:
        """Subscribe a handler to specific event type."""
        self._handlers.setdefault(event_type, []).append(handler)
        self.logger.debug(
            "Handler subscribed", handler=handler.handler_name, event_type=event_type.value
        )

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe a handler to all event types."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event_type: LockerEventType, handler: EventHandler) -> None:
        """Unsubscribe a handler from event type."""
        if event_type in self._handlers:
            self._handlers[event_type] = [h for h in self._handlers[event_type] if h != handler]

    async def publish(self, event: LockerEvent) -> None:
        """Publish an event to all subscribed handlers.

        A failing handler is logged and skipped; it never affects the
        already-committed engine state or the remaining handlers.
        """
        self._event_history.append(event)
        if len(self._event_history) > self._max_history:
            self._event_history.pop(0)

        handlers = self._handlers.get(event.event_type, []) + self._global_handlers
        for handler in handlers:
            try:
                await handler.handle(event)
            except Exception as e:
                self.logger.error(
                    "Event handler failed",
                    handler=handler.handler_name,
                    event_type=event.event_type.value,
                    event_id=event.event_id,
                    error=str(e),
                )

    def get_event_history(
        self, event_type: LockerEventType | None = None, limit: int | None = None
    ) -> list[LockerEvent]:
        """Get event history, optionally filtered by type."""
        events = self._event_history
        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]
        if limit:
            events = events[-limit:]
        return list(events)
