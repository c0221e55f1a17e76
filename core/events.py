# core/events.py

"""
Process-wide publish/subscribe channel for permission changes.

Store mutations publish `settings.PERMISSION_EVENT_NAME` once they succeed;
every live PermissionContext subscribes and refreshes itself. The bus is
injected everywhere it is used so tests can swap in a recording fake.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from core.config import settings
from core.logging_config import logger


PERMISSIONS_CHANGED = settings.PERMISSION_EVENT_NAME

Subscriber = Callable[[str, dict], Awaitable[None]]


class EventBus:
    """
    Minimal async pub/sub interface.
    """

    def subscribe(self, event: str, callback: Subscriber) -> Callable[[], None]:
        raise NotImplementedError

    async def publish(self, event: str, payload: Optional[dict] = None) -> None:
        raise NotImplementedError


class InProcessEventBus(EventBus):
    """
    Default bus: delivers to every subscriber in this process.

    `publish` awaits all subscribers. A failing subscriber is logged and
    never propagates back to the publisher.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(self, event: str, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.setdefault(event, []).append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, []))

    async def publish(self, event: str, payload: Optional[dict] = None) -> None:
        payload = payload or {}
        # Snapshot: subscribers may unsubscribe while being notified
        callbacks = list(self._subscribers.get(event, []))
        logger.info(f"Broadcast {event} to {len(callbacks)} subscriber(s): {payload}")

        if not callbacks:
            return

        results = await asyncio.gather(
            *(callback(event, payload) for callback in callbacks),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Subscriber failed for {event}", exc_info=result)


# Shared bus for the running app
_bus = InProcessEventBus()


def get_event_bus() -> InProcessEventBus:
    return _bus
