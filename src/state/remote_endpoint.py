from __future__ import annotations

from typing import Optional

import httpx

from common.log import get_logger
from common.settings import DEFAULT_REMOTE_TIMEOUT, DEFAULT_REMOTE_URL_TEMPLATE

from .errors import RemoteStoreError


SAVE_OK = "ok"

log = get_logger(__name__)


def endpoint_url(identifier: str, template: str = DEFAULT_REMOTE_URL_TEMPLATE) -> str:
    return template.format(key=identifier)


class RemoteEndpointStore:
    """
    Remote document slot reached over HTTP.

    Protocol
    - `GET <base>?action=read`  -> body is the stored text (may be empty).
    - `POST <base>?action=save` with `Content-Type: text/plain`, body = text
      -> body must be exactly "ok"; anything else is a failed save.

    Notes
    - No retries; the caller decides what to do on failure.
    - Every httpx failure (transport, timeout, redirect loop, bad body
      encoding, malformed URL) and every non-2xx read raises `RemoteStoreError`.
    - Redirects are followed (script hosts answer via a redirect).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("?")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteEndpointStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def read_raw(self) -> str:
        try:
            resp = await self._client.get(self._base_url, params={"action": "read"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteStoreError(f"remote read failed: {exc}") from exc
        if not resp.is_success:
            raise RemoteStoreError(f"HTTP {resp.status_code} from remote read")
        return resp.text

    async def write_raw(self, text: str) -> None:
        try:
            resp = await self._client.post(
                self._base_url,
                params={"action": "save"},
                content=text.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RemoteStoreError(f"remote save failed: {exc}") from exc
        if resp.text != SAVE_OK:
            raise RemoteStoreError(f"remote save rejected: {resp.text[:200]!r}")


__all__ = ["RemoteEndpointStore", "SAVE_OK", "endpoint_url"]
