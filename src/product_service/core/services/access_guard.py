"""Permission gate in front of every product operation."""

from loguru import logger

from src.product_service.core.errors import UnauthorizedError
from src.product_service.core.models.request import RequestContext
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
    Action,
)
from src.product_service.core.services.authority import Authority
from src.product_service.entities.service.product import Product

_BASE_PERMISSION = {
    Action.CREATE: PRODUCT_CREATE,
    Action.READ: PRODUCT_READ,
    Action.UPDATE: PRODUCT_UPDATE,
    Action.DELETE: PRODUCT_DELETE,
}


def required_permissions(
    caller_id: str, action: Action, product: Product | None = None
) -> list[str]:
    """Permissions any one of which allows ``action`` on ``product``.

    ``FULL_ACCESS`` is always the last entry.
    """
    permissions = [PRODUCT_ALL]

    if action is Action.CREATE:
        permissions.append(PRODUCT_CREATE)
    elif action is Action.READ:
        if product is None:
            permissions.append(PRODUCT_READ)
        elif product.is_deleted:
            permissions.append(PRODUCT_READ_DELETED)
        elif not product.is_owned_by(caller_id):
            permissions.extend([PRODUCT_READ, PRODUCT_READ_OTHER])
        else:
            permissions.append(PRODUCT_READ)
    else:
        # Someone else's product needs the escalated permission instead of the base one
        if product is not None and not product.is_owned_by(caller_id):
            permissions.append(PRODUCT_MODIFY_OTHER)
        else:
            permissions.append(_BASE_PERMISSION[action])

    permissions.append(FULL_ACCESS)
    return permissions


class AccessGuard:
    """Resolves an action on a product to permissions and asks the authority."""

    def __init__(self, authority: Authority) -> None:
        self._authority = authority

    async def has_access(self, ctx: RequestContext, permissions: list[str]) -> bool:
        """Ask the authority directly; never raises."""
        if FULL_ACCESS not in permissions:
            permissions = [*permissions, FULL_ACCESS]
        try:
            return await self._authority.has_access(ctx.caller_id, permissions)
        except Exception as e:
            logger.warning(
                "Access check errored, denying",
                user_id=ctx.caller_id,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

    async def check(
        self, ctx: RequestContext, action: Action, product: Product | None = None
    ) -> None:
        """Raise UnauthorizedError unless the caller may perform ``action``."""
        permissions = required_permissions(ctx.caller_id, action, product)
        if await self.has_access(ctx, permissions):
            return

        logger.info(
            "Access denied",
            user_id=ctx.caller_id,
            action=str(action),
            product_id=product.id if product else None,
        )
        raise UnauthorizedError()
