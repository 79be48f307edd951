"""Client for the external permission authority."""

from typing import Protocol

import httpx
from loguru import logger

from src.product_service.runtime.config.config_data import AuthorityConfig
from src.product_service.runtime.context import get_config


class Authority(Protocol):
    async def has_access(self, user_id: str, permissions: list[str]) -> bool:
        """Return True if ``user_id`` holds any of ``permissions``."""
        ...


class HttpAuthorityClient:
    """Asks the authority service whether a user holds a permission.

    Any transport error, malformed answer or explicit ``false`` is reported as
    no access.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: AuthorityConfig | None = None,
    ) -> None:
        config = config or get_config().authority
        self._client = client or httpx.AsyncClient(
            base_url=config.url, timeout=config.timeout_s
        )

    async def has_access(self, user_id: str, permissions: list[str]) -> bool:
        try:
            response = await self._client.post(
                "/v1/access/check",
                json={"user_id": user_id, "permissions": permissions},
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Authority check failed",
                user_id=user_id,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

        if not isinstance(body, dict):
            return False
        return body.get("value") is True

    async def close(self) -> None:
        await self._client.aclose()
