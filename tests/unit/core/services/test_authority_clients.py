"""HTTP clients for the permission authority and object storage metadata."""

import json

import httpx
import pytest

from src.product_service.core.services import HttpAuthorityClient, HttpObjectMetadataClient
from src.product_service.runtime.config.config_data import AuthorityConfig, ObjectStorageConfig


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="http://svc.test", transport=httpx.MockTransport(handler))


class TestHttpAuthorityClient:
    def setup_method(self):
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(200, json={"value": True})

    def _authority(self) -> HttpAuthorityClient:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.response

        return HttpAuthorityClient(client=_client(handler), config=AuthorityConfig())

    @pytest.mark.asyncio
    async def test_granted(self):
        assert await self._authority().has_access("u1", ["PRODUCT_READ", "FULL_ACCESS"])

        request = self.requests[-1]
        assert request.url.path == "/v1/access/check"
        assert json.loads(request.content) == {
            "user_id": "u1",
            "permissions": ["PRODUCT_READ", "FULL_ACCESS"],
        }

    @pytest.mark.asyncio
    async def test_denied(self):
        self.response = httpx.Response(200, json={"value": False})
        assert await self._authority().has_access("u1", ["PRODUCT_READ"]) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"value": True}),
            httpx.Response(200, json=[True]),
            httpx.Response(200, json={"value": "true"}),
            httpx.Response(200, text="not json"),
        ],
    )
    async def test_errors_and_malformed_answers_deny(self, response):
        self.response = response
        assert await self._authority().has_access("u1", ["PRODUCT_READ"]) is False

    @pytest.mark.asyncio
    async def test_transport_error_denies(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        authority = HttpAuthorityClient(client=_client(handler), config=AuthorityConfig())
        assert await authority.has_access("u1", ["PRODUCT_READ"]) is False


class TestHttpObjectMetadataClient:
    @pytest.mark.asyncio
    async def test_get_by_id(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "thumb-1", "type": "IMAGE", "isPublic": True})

        metadata = HttpObjectMetadataClient(client=_client(handler), config=ObjectStorageConfig())
        info = await metadata.get_by_id("u1", "thumb-1")

        assert (info.id, info.type, info.is_public) == ("thumb-1", "IMAGE", True)
        assert seen[0].url.path == "/v1/objects/thumb-1"
        assert seen[0].url.params["user_id"] == "u1"

    @pytest.mark.asyncio
    async def test_missing_object_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        metadata = HttpObjectMetadataClient(client=_client(handler), config=ObjectStorageConfig())
        with pytest.raises(httpx.HTTPStatusError):
            await metadata.get_by_id("u1", "nope")
