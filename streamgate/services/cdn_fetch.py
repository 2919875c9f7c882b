from __future__ import annotations

"""
Streaming fetches from the download CDN for the attachment proxy.

`CDNFetcher.open(url)` returns an `UpstreamFile` whose body has not been read
yet; the caller streams it out and must `aclose()` it (the proxy route hands
that to the response's background task). Transport failures surface as
`httpx.HTTPError`.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from streamgate.core.config import Settings, settings as default_settings

CHUNK_SIZE = 64 * 1024


@dataclass
class UpstreamFile:
    response: httpx.Response
    client: httpx.AsyncClient

    @property
    def ok(self) -> bool:
        return self.response.is_success

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def content_length(self) -> Optional[str]:
        """Upstream length, unless the body is re-encoded on the way through."""
        if self.response.headers.get("content-encoding", "identity").lower() != "identity":
            return None
        return self.response.headers.get("content-length")

    def iter_body(self) -> AsyncIterator[bytes]:
        """Decoded body chunks."""
        return self.response.aiter_bytes(CHUNK_SIZE)

    async def aclose(self) -> None:
        try:
            await self.response.aclose()
        finally:
            await self.client.aclose()


class CDNFetcher:
    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        cfg = config or default_settings
        # Only the connect phase is bounded; large files may take a while.
        self._timeout = httpx.Timeout(None, connect=cfg.HTTP_TIMEOUT_SECONDS)
        self._transport = transport

    async def open(self, url: str) -> UpstreamFile:
        client = httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        try:
            response = await client.send(client.build_request("GET", url), stream=True)
        except BaseException:
            await client.aclose()
            raise
        return UpstreamFile(response=response, client=client)


__all__ = ["CDNFetcher", "UpstreamFile", "CHUNK_SIZE"]
