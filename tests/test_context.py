import asyncio
import time

import pytest
from marketplace_console.authorization.context import (
    AuthorizationContext,
    AuthorizationRegistry,
    source_factory_from_settings,
)
from marketplace_console.authorization.permission_source import HttpPermissionSource, RoleDefaultPermissionSource
from marketplace_console.authorization.store import StoreStatus
from marketplace_console.config import Settings
from marketplace_console.core.exceptions import AuthorizationContextError
from tests.conftest import TENANT_A, TENANT_B, FakePermissionSource


class TestAuthorizationContext:
    """Tests for a single session's authorization state"""

    @pytest.mark.asyncio
    async def test_load_permissions_for_principal_tenant(self, admin_principal):
        source = FakePermissionSource({(admin_principal.id, TENANT_A): ["orders:read"]})
        context = AuthorizationContext(admin_principal, source)

        assert context.store.status == StoreStatus.UNKNOWN
        await context.load_permissions()

        assert context.store.status == StoreStatus.READY
        assert context.resolver.can_access("orders:read") is True

    @pytest.mark.asyncio
    async def test_switch_tenant_drops_previous_grants(self, admin_principal):
        source = FakePermissionSource(
            {
                (admin_principal.id, TENANT_A): ["orders:read"],
                (admin_principal.id, TENANT_B): ["refunds:read"],
            }
        )
        context = AuthorizationContext(admin_principal, source)
        await context.load_permissions()

        switched = context.switch_tenant(TENANT_B)

        assert switched.tenant_id == TENANT_B
        assert context.resolver.is_loading is True
        assert context.resolver.can_access("orders:read") is False

        await context.load_permissions()
        assert context.resolver.can_access("refunds:read") is True
        assert context.resolver.can_access("orders:read") is False

    @pytest.mark.asyncio
    async def test_teardown_wipes_and_closes_source(self, admin_principal):
        source = FakePermissionSource({(admin_principal.id, TENANT_A): ["orders:read"]})
        context = AuthorizationContext(admin_principal, source)
        await context.load_permissions()

        await context.teardown()

        assert source.closed is True
        assert context.principal is None
        assert context.resolver.can_access("orders:read") is False
        with pytest.raises(AuthorizationContextError):
            context.switch_tenant(TENANT_B)

    @pytest.mark.asyncio
    async def test_load_after_teardown_is_a_no_op(self, admin_principal):
        source = FakePermissionSource()
        context = AuthorizationContext(admin_principal, source)
        await context.teardown()

        await context.load_permissions()

        assert source.calls == []
        assert context.store.status == StoreStatus.SIGNED_OUT

    @pytest.mark.asyncio
    async def test_refresh_reloads_tenant_the_store_moved_to(self, admin_principal):
        source = FakePermissionSource({(admin_principal.id, TENANT_B): ["refunds:read"]})
        context = AuthorizationContext(admin_principal, source)
        await context.store.fetch_permissions(admin_principal.id, TENANT_B)

        await context.load_permissions(refresh=True)

        assert source.calls == [(admin_principal.id, TENANT_B), (admin_principal.id, TENANT_B)]
        assert context.resolver.can_access("refunds:read") is True

    def test_is_expired_compares_against_token_exp(self, admin_principal):
        context = AuthorizationContext(admin_principal, FakePermissionSource(), expires_at=1000.0)

        assert context.is_expired(now=999.0) is False
        assert context.is_expired(now=1000.0) is True
        assert AuthorizationContext(admin_principal, FakePermissionSource()).is_expired() is False


class TestAuthorizationRegistry:
    """Tests for opening and closing session contexts"""

    @pytest.mark.asyncio
    async def test_open_and_close(self, admin_principal, super_principal):
        registry = AuthorizationRegistry(lambda principal, token: FakePermissionSource())

        admin = await registry.open(admin_principal)
        await registry.open(super_principal)

        assert len(registry) == 2
        assert registry.get(admin_principal.id) is admin

        assert await registry.close(admin_principal.id) is True
        assert await registry.close(admin_principal.id) is False
        assert registry.get(admin_principal.id) is None
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_factory_receives_principal_and_token(self, admin_principal):
        seen = []

        def factory(principal, token):
            seen.append((principal.id, token))
            return FakePermissionSource()

        await AuthorizationRegistry(factory).open(admin_principal, "token-abc")
        assert seen == [(admin_principal.id, "token-abc")]

    @pytest.mark.asyncio
    async def test_close_all(self, admin_principal, support_principal):
        sources = []

        def factory(principal, token):
            sources.append(FakePermissionSource())
            return sources[-1]

        registry = AuthorizationRegistry(factory)
        await registry.open(admin_principal)
        await registry.open(support_principal)

        await registry.close_all()

        assert len(registry) == 0
        assert all(source.closed for source in sources)

    @pytest.mark.asyncio
    async def test_concurrent_sign_ins_close_every_replaced_source(self, admin_principal):
        sources = []

        class SlowClosingSource(FakePermissionSource):
            async def aclose(self):
                await asyncio.sleep(0.01)
                self.closed = True

        def factory(principal, token):
            sources.append(SlowClosingSource())
            return sources[-1]

        registry = AuthorizationRegistry(factory)
        await registry.open(admin_principal)

        await asyncio.gather(registry.open(admin_principal), registry.open(admin_principal))
        await registry.close_all()

        assert len(sources) == 3
        assert all(source.closed for source in sources)

    @pytest.mark.asyncio
    async def test_expired_session_is_hidden_and_evicted(self, admin_principal):
        sources = []

        def factory(principal, token):
            sources.append(FakePermissionSource())
            return sources[-1]

        registry = AuthorizationRegistry(factory)
        await registry.open(admin_principal, expires_at=time.time() - 1)
        assert registry.get(admin_principal.id) is None
        assert len(registry) == 0
        assert sources[0].closed is True

    @pytest.mark.asyncio
    async def test_sign_in_sweeps_other_expired_sessions(self, admin_principal, super_principal):
        sources = []

        def factory(principal, token):
            sources.append(FakePermissionSource())
            return sources[-1]

        registry = AuthorizationRegistry(factory)
        stale = await registry.open(admin_principal, expires_at=time.time() + 60)
        stale.expires_at = time.time() - 1

        await registry.open(super_principal, expires_at=time.time() + 60)

        assert registry.get(admin_principal.id) is None
        assert registry.get(super_principal.id) is not None
        assert len(registry) == 1
        assert sources[0].closed is True
        assert await registry.evict_expired() == 0


class TestSourceFactoryFromSettings:
    """Tests for choosing the permissions source from configuration"""

    @pytest.mark.asyncio
    async def test_http_source_when_api_configured(self, admin_principal):
        settings = Settings(SECRET_KEY="test-secret-key", PERMISSIONS_API_URL="https://api.example.com")
        source = source_factory_from_settings(settings)(admin_principal, "token-abc")
        assert isinstance(source, HttpPermissionSource)
        assert source.access_token == "token-abc"
        await source.aclose()

    @pytest.mark.asyncio
    async def test_role_defaults_without_api(self, support_principal):
        settings = Settings(SECRET_KEY="test-secret-key", PERMISSIONS_API_URL="")
        source = source_factory_from_settings(settings)(support_principal, None)

        assert isinstance(source, RoleDefaultPermissionSource)
        assert "orders:read" in await source.fetch(support_principal.id, TENANT_A)
