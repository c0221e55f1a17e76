# services/permission_context.py

"""
Per-session cache of a user's effective permissions.

    unauthenticated ──sign_in──▶ loading ──resolved──▶ ready
          ▲                        ▲                    │
          └───────sign_out─────────┴──refresh / event───┘

Queries answer False unless the context is ready. Refreshes follow a
latest-request-wins rule: every load takes a new generation number and
a result is applied only if no newer load was issued in the meantime.
"""

import asyncio
from typing import Callable, FrozenSet, Iterable, List, Optional

from core.events import PERMISSIONS_CHANGED, EventBus, get_event_bus
from core.logging_config import logger
from models.enums import ContextState, ResolutionMode
from models.resolution import ResolvedPermissions
from models.role import RoleSummary
from models.user import User
from services.permission_resolution import degraded_resolution


Listener = Callable[["PermissionContext"], None]


class PermissionContext:

    def __init__(self, resolver, bus: Optional[EventBus] = None):
        self.resolver = resolver
        self.bus = bus or get_event_bus()

        self._state = ContextState.unauthenticated
        self._user: Optional[User] = None
        self._resolved: Optional[ResolvedPermissions] = None
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listeners: List[Listener] = []
        self._waiters: List[asyncio.Future] = []

    # -----------------------------------------------------
    # Read-only state
    # -----------------------------------------------------
    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def permissions(self) -> FrozenSet[str]:
        if self._state != ContextState.ready or self._resolved is None:
            return frozenset()
        return self._resolved.permission_codes

    @property
    def roles(self) -> List[RoleSummary]:
        if self._state != ContextState.ready or self._resolved is None:
            return []
        return list(self._resolved.roles)

    @property
    def mode(self) -> Optional[ResolutionMode]:
        return self._resolved.mode if self._resolved else None

    @property
    def resolved(self) -> Optional[ResolvedPermissions]:
        return self._resolved

    @property
    def is_loading(self) -> bool:
        return self._state == ContextState.loading

    @property
    def is_ready(self) -> bool:
        return self._state == ContextState.ready

    @property
    def is_degraded(self) -> bool:
        return self.is_ready and self._resolved is not None and self._resolved.is_degraded

    # -----------------------------------------------------
    # Queries (fail-closed)
    # -----------------------------------------------------
    def has_permission(self, code: str) -> bool:
        return code in self.permissions

    def has_any_permission(self, codes: Iterable[str]) -> bool:
        granted = self.permissions
        return any(code in granted for code in codes)

    def has_all_permissions(self, codes: Iterable[str]) -> bool:
        codes = list(codes)
        if not codes:
            return False
        granted = self.permissions
        return all(code in granted for code in codes)

    # -----------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------
    async def sign_in(self, user: User) -> None:
        if self._user is not None and self._user.id != user.id:
            self.sign_out()

        self._user = user
        if self._unsubscribe is None:
            self._unsubscribe = self.bus.subscribe(PERMISSIONS_CHANGED, self._on_permissions_changed)

        await self.refresh()

    def sign_out(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        # Any load still in flight becomes stale
        self._generation += 1
        self._user = None
        self._resolved = None
        self._set_state(ContextState.unauthenticated)

    async def refresh(self) -> None:
        if self._user is None:
            return

        self._generation += 1
        generation = self._generation
        user = self._user
        self._set_state(ContextState.loading)

        try:
            resolved = await self.resolver.resolve(user.id, legacy_role=user.role)
        except Exception as e:
            logger.error(f"Permission resolution failed for user {user.id}", exc_info=True)
            resolved = degraded_resolution(user.id, user.role, e)

        if generation != self._generation:
            logger.debug(
                f"Discarding stale permission resolution for user {user.id} "
                f"(generation {generation}, current {self._generation})"
            )
            return

        self._resolved = resolved
        self._set_state(ContextState.ready)

    async def wait_until_settled(self) -> None:
        """
        Wait for in-flight loads to finish. Returns once the context is
        ready or signed out; newer loads started meanwhile are waited on too.
        """
        while self._state == ContextState.loading:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter

    async def _on_permissions_changed(self, event: str, payload: dict) -> None:
        await self.refresh()

    # -----------------------------------------------------
    # Observation
    # -----------------------------------------------------
    def add_listener(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _set_state(self, state: ContextState) -> None:
        self._state = state

        if state != ContextState.loading:
            waiters, self._waiters = self._waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)

        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.error("Permission context listener failed", exc_info=True)
