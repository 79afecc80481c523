"""Session-scoped ownership of the permission store."""

from __future__ import annotations

import logging
import time
from typing import Callable

from marketplace_console.authorization.permission_source import (
    HttpPermissionSource,
    PermissionSource,
    RoleDefaultPermissionSource,
)
from marketplace_console.authorization.resolver import AccessResolver
from marketplace_console.authorization.store import PermissionStore
from marketplace_console.config import Settings
from marketplace_console.core.exceptions import AuthorizationContextError
from marketplace_console.models.principal import Principal

log = logging.getLogger(__name__)

SourceFactory = Callable[[Principal, "str | None"], PermissionSource]


class AuthorizationContext:
    """
    Authorization state for one signed-in console session.

    Created by ``AuthorizationRegistry.open`` at sign-in and torn down by
    ``close`` at sign-out. The store is the single writer of the session's
    permission set; the resolver and guards read through it.
    """

    def __init__(
        self,
        principal: Principal,
        source: PermissionSource,
        *,
        cache_ttl: float = 0,
        expires_at: float | None = None,
    ):
        self.source = source
        self.expires_at = expires_at
        self.store = PermissionStore(source, cache_ttl=cache_ttl)
        self.resolver = AccessResolver(self.store)
        self.store.set_user(principal)

    @property
    def principal(self) -> Principal | None:
        return self.store.principal

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (time.time() if now is None else now) >= self.expires_at

    def switch_tenant(self, tenant_id: str) -> Principal:
        """Move the session to ``tenant_id``; the previous tenant's grants are dropped now."""
        principal = self.store.principal
        if principal is None:
            raise AuthorizationContextError("Cannot switch tenant on a closed session")
        switched = principal.with_tenant(tenant_id)
        self.store.set_user(switched)
        return switched

    async def load_permissions(self, *, refresh: bool = False) -> None:
        principal = self.store.principal
        if principal is None:
            return
        await self.store.fetch_permissions(principal.id, self.store.tenant_id, refresh=refresh)

    async def teardown(self) -> None:
        self.store.clear_permissions()
        await self.source.aclose()

    def __repr__(self) -> str:
        principal = self.store.principal
        return (
            f"<AuthorizationContext(user_id={principal.id if principal else None}, "
            f"tenant_id={self.store.tenant_id}, status={self.store.status.value})>"
        )


class AuthorizationRegistry:
    """
    Open authorization contexts keyed by principal id.

    A context opened with ``expires_at`` (the sign-in token's ``exp``) is
    hidden from ``get`` once that time passes and torn down by the next
    ``evict_expired`` sweep, which every ``open`` runs.
    """

    def __init__(self, source_factory: SourceFactory, *, cache_ttl: float = 0):
        self.source_factory = source_factory
        self.cache_ttl = cache_ttl
        self._contexts: dict[str, AuthorizationContext] = {}

    def get(self, user_id: str) -> AuthorizationContext | None:
        context = self._contexts.get(user_id)
        if context is None or context.is_expired():
            return None
        return context

    async def open(
        self,
        principal: Principal,
        access_token: str | None = None,
        *,
        expires_at: float | None = None,
    ) -> AuthorizationContext:
        """Start a session context, replacing any context the principal already had."""
        context = AuthorizationContext(
            principal,
            self.source_factory(principal, access_token),
            cache_ttl=self.cache_ttl,
            expires_at=expires_at,
        )
        # Register before awaiting teardown; a concurrent open then tears this one down.
        previous = self._contexts.get(principal.id)
        self._contexts[principal.id] = context
        log.info("session.opened user_id=%s tenant_id=%s", principal.id, principal.tenant_id)

        if previous is not None:
            await previous.teardown()
        await self.evict_expired()
        return context

    async def close(self, user_id: str) -> bool:
        context = self._contexts.pop(user_id, None)
        if context is None:
            return False
        await context.teardown()
        log.info("session.closed user_id=%s", user_id)
        return True

    async def evict_expired(self) -> int:
        """Tear down every context whose sign-in token has expired."""
        now = time.time()
        expired = [(user_id, context) for user_id, context in self._contexts.items() if context.is_expired(now)]
        evicted = 0
        for user_id, context in expired:
            if self._contexts.get(user_id) is not context:
                continue
            del self._contexts[user_id]
            await context.teardown()
            evicted += 1
            log.info("session.expired user_id=%s", user_id)
        return evicted

    async def close_all(self) -> None:
        for user_id in list(self._contexts):
            await self.close(user_id)

    def __len__(self) -> int:
        return len(self._contexts)


def source_factory_from_settings(settings: Settings) -> SourceFactory:
    """Use the permissions API when configured, role defaults otherwise."""

    def factory(principal: Principal, access_token: str | None) -> PermissionSource:
        if settings.PERMISSIONS_API_URL:
            return HttpPermissionSource(
                settings.PERMISSIONS_API_URL,
                path=settings.PERMISSIONS_PATH,
                tenant_header=settings.TENANT_HEADER,
                access_token=access_token,
                timeout=settings.PERMISSIONS_TIMEOUT,
            )
        return RoleDefaultPermissionSource(principal.role)

    return factory
