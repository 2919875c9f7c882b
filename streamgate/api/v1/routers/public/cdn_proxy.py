# ─────────────────────────────────────────────────────────────────────────────
# 📡 CDN Attachment Proxy
# ─────────────────────────────────────────────────────────────────────────────

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from loguru import logger
from starlette.background import BackgroundTask

from streamgate.api.http_utils import filename_from_url
from streamgate.core.config import settings
from streamgate.core.dependencies import get_cdn_fetcher, get_cdn_locator
from streamgate.core.exceptions import (
    CDNFetchFailedException,
    CDNFileUnavailableException,
    InvalidDownloadTargetException,
)
from streamgate.core.limiter import rate_limit
from streamgate.services.cdn import CDNLocator
from streamgate.services.cdn_fetch import CDNFetcher

router = APIRouter(tags=["Public Downloads"])
__all__ = ["router"]

ATTACHMENT_CACHE_CONTROL = "public, max-age=86400"


def _resolve_target(cdn: CDNLocator, url: Optional[str], path: Optional[str]) -> str:
    if url:
        if not cdn.is_allowed_download_url(url):
            raise InvalidDownloadTargetException(detail="Invalid download URL")
        return url
    if path:
        target = cdn.download_url_for_path(path)
        if not target:
            raise InvalidDownloadTargetException(detail="Invalid path")
        return target
    raise InvalidDownloadTargetException(detail="Missing url or path parameter")


@router.get(
    "/download",
    response_class=StreamingResponse,
    summary="Stream a CDN file back as an attachment",
)
@rate_limit(settings.DOWNLOAD_RATE_LIMIT)
async def proxy_download(
    request: Request,
    response: Response,
    url: Optional[str] = Query(None, max_length=2048, description="Full download URL on an allowed CDN host"),
    path: Optional[str] = Query(None, max_length=1024, description="Legacy path under CDN_DOWNLOAD_BASE"),
    cdn: CDNLocator = Depends(get_cdn_locator),
    fetcher: CDNFetcher = Depends(get_cdn_fetcher),
) -> StreamingResponse:
    """
    Steps
    -----
    1) Resolve `url` (allow-listed https host) or legacy `path` (400 otherwise)
    2) Open the CDN file as a stream (502 when unreachable)
    3) Pass a non-2xx CDN status through
    4) Stream the body with `Content-Disposition: attachment`
    """
    # [Step 1]
    target = _resolve_target(cdn, url, path)

    # [Step 2]
    try:
        upstream = await fetcher.open(target)
    except httpx.HTTPError as exc:
        logger.warning("CDN fetch failed for {}: {}", target, exc)
        raise CDNFetchFailedException()

    # [Step 3]
    if not upstream.ok:
        status_code = upstream.status_code
        await upstream.aclose()
        logger.info("CDN answered {} for {}", status_code, target)
        raise CDNFileUnavailableException(upstream_status=status_code)

    # [Step 4]
    headers = {
        "Content-Disposition": f'attachment; filename="{filename_from_url(target)}"',
        "Cache-Control": ATTACHMENT_CACHE_CONTROL,
        # GZipMiddleware leaves encoded bodies alone; Content-Length survives.
        "Content-Encoding": "identity",
    }
    if upstream.content_length:
        headers["Content-Length"] = upstream.content_length

    return StreamingResponse(
        upstream.iter_body(),
        media_type="application/octet-stream",
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
