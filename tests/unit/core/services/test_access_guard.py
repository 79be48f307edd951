"""Permission resolution and the authority round trip."""

from datetime import UTC, datetime

import pytest

from src.product_service.core.errors import UnauthorizedError
from src.product_service.core.permissions import (
    FULL_ACCESS,
    PRODUCT_ALL,
    PRODUCT_CREATE,
    PRODUCT_DELETE,
    PRODUCT_MODIFY_OTHER,
    PRODUCT_READ,
    PRODUCT_READ_DELETED,
    PRODUCT_READ_OTHER,
    PRODUCT_UPDATE,
    SEED_GROUPS,
    Action,
)
from src.product_service.core.services.access_guard import (
    AccessGuard,
    required_permissions,
)
from tests.fixtures.dummies import FakeAuthority
from tests.utils import OTHER, OWNER, ctx_for, make_product


class TestRequiredPermissions:
    def test_create(self):
        assert required_permissions(OWNER, Action.CREATE) == [
            PRODUCT_ALL,
            PRODUCT_CREATE,
            FULL_ACCESS,
        ]

    def test_read_own_product(self):
        product = make_product(owner_id=OWNER)
        assert required_permissions(OWNER, Action.READ, product) == [
            PRODUCT_ALL,
            PRODUCT_READ,
            FULL_ACCESS,
        ]

    def test_read_other_product(self):
        product = make_product(owner_id=OWNER)
        permissions = required_permissions(OTHER, Action.READ, product)
        assert PRODUCT_READ_OTHER in permissions
        assert permissions[-1] == FULL_ACCESS

    def test_read_deleted_product_needs_read_deleted(self):
        product = make_product(deleted_at=datetime.now(UTC))
        assert required_permissions(OWNER, Action.READ, product) == [
            PRODUCT_ALL,
            PRODUCT_READ_DELETED,
            FULL_ACCESS,
        ]

    @pytest.mark.parametrize(
        ("action", "base"),
        [(Action.UPDATE, PRODUCT_UPDATE), (Action.DELETE, PRODUCT_DELETE)],
    )
    def test_modify_own_product(self, action, base):
        product = make_product(owner_id=OWNER)
        assert required_permissions(OWNER, action, product) == [
            PRODUCT_ALL,
            base,
            FULL_ACCESS,
        ]

    @pytest.mark.parametrize("action", [Action.UPDATE, Action.DELETE])
    def test_modify_other_product_needs_escalation(self, action):
        """The base permission alone is not enough on someone else's product."""
        product = make_product(owner_id=OWNER)
        permissions = required_permissions(OTHER, action, product)
        assert permissions == [PRODUCT_ALL, PRODUCT_MODIFY_OTHER, FULL_ACCESS]


class TestAccessGuard:
    def setup_method(self):
        self.authority = FakeAuthority()
        self.guard = AccessGuard(self.authority)

    @pytest.mark.asyncio
    async def test_check_passes_with_permission(self):
        self.authority.grant(OWNER, PRODUCT_CREATE)
        await self.guard.check(ctx_for(OWNER), Action.CREATE)

    @pytest.mark.asyncio
    async def test_check_raises_without_permission(self):
        with pytest.raises(UnauthorizedError):
            await self.guard.check(ctx_for(OWNER), Action.CREATE)

    @pytest.mark.asyncio
    async def test_full_access_grants_everything(self):
        self.authority.grant(OWNER, FULL_ACCESS)
        product = make_product(owner_id=OTHER)
        await self.guard.check(ctx_for(OWNER), Action.DELETE, product)

    @pytest.mark.asyncio
    async def test_authority_error_means_denied(self):
        """A failing authority never grants access."""
        self.authority.grant(OWNER, FULL_ACCESS)
        self.authority.error = RuntimeError("authority down")

        assert await self.guard.has_access(ctx_for(OWNER), [PRODUCT_READ]) is False
        with pytest.raises(UnauthorizedError):
            await self.guard.check(ctx_for(OWNER), Action.READ)

    @pytest.mark.asyncio
    async def test_has_access_appends_full_access(self):
        await self.guard.has_access(ctx_for(OWNER), [PRODUCT_READ])
        _, asked = self.authority.calls[-1]
        assert asked == [PRODUCT_READ, FULL_ACCESS]

    @pytest.mark.asyncio
    async def test_default_group_cannot_modify_others(self):
        self.authority.grant(OTHER, *SEED_GROUPS["DEFAULT"])
        product = make_product(owner_id=OWNER)

        with pytest.raises(UnauthorizedError):
            await self.guard.check(ctx_for(OTHER), Action.UPDATE, product)
