"""
In-process event publishers.

``CallbackEventPublisher`` replaces a global event bus with an explicit
list of subscribers. Each subscriber runs in isolation: one failing handler
is logged and the remaining handlers still receive the event.
"""

import inspect
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from compliance_engine.shared.infrastructure.logging import get_logger
from compliance_engine.sla.application import IEventPublisher
from compliance_engine.sla.domain import SlaEvent

logger = get_logger(__name__)

EventHandler = Callable[[SlaEvent], Union[None, Awaitable[None]]]


class CallbackEventPublisher(IEventPublisher):
    """Dispatches events to subscribed callables (sync or async)."""

    def __init__(self):
        # None key holds subscribers to every event
        self._handlers: Dict[Optional[str], List[EventHandler]] = defaultdict(list)

    def subscribe(self, handler: EventHandler, event_name: Optional[str] = None) -> None:
        """Subscribe to one event name, or to all events when omitted."""
        self._handlers[event_name].append(handler)

    def unsubscribe(self, handler: EventHandler, event_name: Optional[str] = None) -> bool:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    async def publish(self, event: SlaEvent) -> None:
        handlers = list(self._handlers.get(event.event_name, [])) + list(self._handlers.get(None, []))
        for handler in handlers:
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    f"Event handler failed for {event.event_name}: {e}",
                    extra={"instance_id": event.instance_id, "handler": getattr(handler, "__name__", repr(handler))}
                )


class CompositeEventPublisher(IEventPublisher):
    """Fans one event out to several publishers, isolating each."""

    def __init__(self, publishers: Sequence[IEventPublisher]):
        self._publishers = list(publishers)

    async def publish(self, event: SlaEvent) -> None:
        for publisher in self._publishers:
            try:
                await publisher.publish(event)
            except Exception as e:
                logger.error(
                    f"{type(publisher).__name__} failed to publish {event.event_name}: {e}",
                    extra={"instance_id": event.instance_id}
                )
