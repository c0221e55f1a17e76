# services/session_registry.py

import time
from typing import Callable, Dict, Optional

from core.config import settings
from core.events import EventBus, get_event_bus
from core.logging_config import logger
from models.user import User
from services.permission_context import PermissionContext


class SessionRegistry:
    """
    Keeps one signed-in PermissionContext per authenticated user so the
    broadcast-driven refresh survives across requests.

    Sessions end on explicit sign-out, or once they have not been used for
    `idle_timeout` seconds (0 disables idle eviction).
    """

    def __init__(
        self,
        resolver,
        bus: Optional[EventBus] = None,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.resolver = resolver
        self.bus = bus or get_event_bus()
        self.idle_timeout = (
            settings.SESSION_IDLE_TIMEOUT_SECONDS if idle_timeout is None else idle_timeout
        )
        self._clock = clock
        self._contexts: Dict[str, PermissionContext] = {}
        self._last_seen: Dict[str, float] = {}

    async def get_context(self, user: User) -> PermissionContext:
        """
        Returns the user's context once no load is in flight, so callers
        never observe the loading state of someone else's refresh.
        """
        self.prune_idle()
        self._last_seen[user.id] = self._clock()

        context = self._contexts.get(user.id)
        if context is None:
            context = PermissionContext(self.resolver, self.bus)
            self._contexts[user.id] = context
            logger.debug(f"Session context created for user {user.id}")
            await context.sign_in(user)
        elif not context.is_ready and not context.is_loading:
            await context.sign_in(user)

        await context.wait_until_settled()
        return context

    def end_session(self, user_id: str) -> None:
        self._last_seen.pop(user_id, None)
        context = self._contexts.pop(user_id, None)
        if context is not None:
            context.sign_out()
            logger.debug(f"Session context closed for user {user_id}")

    def prune_idle(self) -> int:
        if not self.idle_timeout or self.idle_timeout <= 0:
            return 0

        cutoff = self._clock() - self.idle_timeout
        idle = [user_id for user_id, seen in self._last_seen.items() if seen < cutoff]
        for user_id in idle:
            self.end_session(user_id)

        if idle:
            logger.info(f"Evicted {len(idle)} idle permission session(s)")
        return len(idle)

    def clear(self) -> None:
        for user_id in list(self._contexts):
            self.end_session(user_id)

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._contexts
