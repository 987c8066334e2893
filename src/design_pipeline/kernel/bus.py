"""
In-process Event Bus

Committed design events are published here after their transaction commits.
This is the seam for notification dispatch (email, Slack, activity feeds),
which must never run inside the transaction that produced the events.
"""

from collections import defaultdict
from typing import Callable

from design_pipeline.events.models import DesignEvent, DesignEventType
from design_pipeline.kernel.logging import get_logger

logger = get_logger(__name__)


EventHandler = Callable[[DesignEvent], None]


class EventBus:
    """
    Simple synchronous publish/subscribe bus

    Handlers run in subscription order. A failing handler is logged and the
    remaining handlers still run: the events are already committed.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[DesignEventType, list[EventHandler]] = defaultdict(list)
        self._catch_all: list[EventHandler] = []

    def subscribe(self, event_type: DesignEventType | str, handler: EventHandler) -> None:
        """
        Register a handler for one event type

        Multiple handlers may subscribe to the same type.
        """
        event_type = DesignEventType(event_type)
        self._handlers[event_type].append(handler)
        logger.debug(
            "Event handler subscribed",
            event_type=event_type.value,
            total_handlers=len(self._handlers[event_type]),
        )

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register a handler receiving every published event"""
        self._catch_all.append(handler)

    def publish_event(self, event: DesignEvent) -> None:
        handlers = [*self._handlers.get(event.type, []), *self._catch_all]
        if not handlers:
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    event_type=event.type.value,
                    event_id=event.id,
                    design_id=event.design_id,
                    error=str(e),
                    exc_info=True,
                )

    def publish_events(self, events: list[DesignEvent]) -> None:
        if events:
            logger.debug(
                "Publishing committed events",
                event_count=len(events),
                event_types=[e.type.value for e in events],
            )
        for event in events:
            self.publish_event(event)

    def clear(self) -> None:
        self._handlers.clear()
        self._catch_all.clear()
