# keyadmin/infrastructure/outline/client.py

from typing import Any, Optional

import httpx

from keyadmin.application.customer_repository import AccessKey
from keyadmin.application.exceptions import ConfigurationError, UpstreamError
from keyadmin.infrastructure.outline.pinning import PinnedTransport


class OutlineClient:
    """
    Outline server management API. Implements the KeyManager protocol.
    The API URL embeds its own secret path segment, so paths are appended to
    it rather than resolved against it.
    """

    def __init__(
        self,
        api_url: str,
        cert_sha256: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if transport is None:
            if not cert_sha256:
                raise ConfigurationError("OUTLINE_CERT_SHA256 is not set")
            transport = PinnedTransport(cert_sha256)
        self._base_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(transport=transport, timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Outline API request failed: {e}") from e

        if not response.is_success:
            text = response.text
            raise UpstreamError(
                f"Outline API error {response.status_code}: {text or response.reason_phrase}",
                status_code=response.status_code,
                body=text,
            )
        return response

    async def create_access_key(self) -> AccessKey:
        response = await self._request("POST", "/access-keys")
        try:
            data = response.json()
            return AccessKey(id=str(data["id"]), access_url=data["accessUrl"])
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamError(f"Outline API returned an unexpected access key payload: {e}") from e

    async def rename_access_key(self, key_id: str, name: str) -> None:
        await self._request("PUT", f"/access-keys/{key_id}/name", files={"name": (None, name)})

    async def delete_access_key(self, key_id: str) -> None:
        await self._request("DELETE", f"/access-keys/{key_id}")

    async def set_data_limit(self, key_id: str, limit_bytes: int) -> None:
        await self._request(
            "PUT",
            f"/access-keys/{key_id}/data-limit",
            files={"limit.bytes": (None, str(limit_bytes))},
        )

    async def remove_data_limit(self, key_id: str) -> None:
        await self._request("DELETE", f"/access-keys/{key_id}/data-limit")

    async def aclose(self) -> None:
        await self._client.aclose()
