# ─────────────────────────────────────────────────────────────────────────────
# ⬇️ Public Downloads API
# ─────────────────────────────────────────────────────────────────────────────

from typing import Dict

from fastapi import APIRouter, Body, Depends, Path, Request, Response
from loguru import logger

from streamgate.api.http_utils import hash_client_ip, load_visible_episode, set_no_store
from streamgate.core.config import settings
from streamgate.core.dependencies import (
    get_access_policy,
    get_cdn_locator,
    get_turnstile_verifier,
    get_viewer_context,
)
from streamgate.core.exceptions import (
    DownloadLockedException,
    QualityUnavailableException,
    VerificationFailedException,
    VerificationRequiredException,
)
from streamgate.core.limiter import client_ip, rate_limit
from streamgate.repositories import DownloadEntry, EpisodeRecord, Repositories, get_repositories
from streamgate.schemas.access import (
    DownloadIssuedOut,
    DownloadOptionOut,
    DownloadOptionsOut,
    DownloadRequestIn,
)
from streamgate.services.access_policy import (
    AccessDecision,
    AccessPolicy,
    ViewerContext,
    evaluate_access,
    quality_label,
)
from streamgate.services.cdn import CDNLocator
from streamgate.services.turnstile import TurnstileVerifier

router = APIRouter(tags=["Public Downloads"])
__all__ = ["router"]


# ─────────────────────────────────────────────────────────────────────────────
# ⚙️ Utilities
# ─────────────────────────────────────────────────────────────────────────────

async def _top_tier_used_today(
    repos: Repositories, viewer: ViewerContext, policy: AccessPolicy
) -> int:
    """Guests have no identity to count against; staff/premium are uncapped."""
    if viewer.id is None or viewer.is_unrestricted:
        return 0
    return await repos.downloads.count_top_tier_today(viewer.id, policy.top_tier)


async def _decide(
    episode: EpisodeRecord,
    viewer: ViewerContext,
    repos: Repositories,
    policy: AccessPolicy,
    cdn: CDNLocator,
) -> tuple[AccessDecision, Dict[int, str], int]:
    locators = cdn.download_locators(episode)
    used = await _top_tier_used_today(repos, viewer, policy)
    decision = evaluate_access(
        cdn.stream_locators(episode),
        viewer,
        episode.upload_date,
        download_locators=locators,
        daily_top_tier_downloads_used=used,
        policy=policy,
    )
    return decision, locators, used


# ─────────────────────────────────────────────────────────────────────────────
# 📋 Options
# ─────────────────────────────────────────────────────────────────────────────

@router.get(
    "/episodes/{ref}/downloads",
    response_model=DownloadOptionsOut,
    response_model_exclude_none=True,
    summary="Download tiers with lock state for the current viewer",
)
async def get_download_options(
    response: Response,
    ref: str = Path(..., description="Episode id or slug"),
    viewer: ViewerContext = Depends(get_viewer_context),
    repos: Repositories = Depends(get_repositories),
    policy: AccessPolicy = Depends(get_access_policy),
    cdn: CDNLocator = Depends(get_cdn_locator),
) -> DownloadOptionsOut:
    """
    Every downloadable tier, unlocked or locked with a reason.

    Locked tiers carry `reason`/`lock_code` and never a URL; the top tier is
    shown locked rather than hidden so the dialog can explain why. Viewers
    who must pass Turnstile get no URLs here at all: theirs comes from the
    verified POST, which also writes the download log.
    """
    episode = await load_visible_episode(repos, ref, viewer)
    decision, locators, used = await _decide(episode, viewer, repos, policy, cdn)

    options = []
    for tier in decision.download_tiers:
        data = tier.to_dict()
        data["label"] = quality_label(tier.quality)
        if not tier.locked and not decision.requires_verification:
            data["url"] = locators[tier.quality]
        options.append(DownloadOptionOut(**data))

    set_no_store(response)
    return DownloadOptionsOut(
        episode_id=episode.id,
        requires_verification=decision.requires_verification,
        daily_limit=policy.daily_limit,
        used_today=used,
        options=options,
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🎟️ Issue
# ─────────────────────────────────────────────────────────────────────────────

@router.post(
    "/episodes/{ref}/downloads",
    response_model=DownloadIssuedOut,
    summary="Issue a download URL and record it",
)
@rate_limit(settings.DOWNLOAD_RATE_LIMIT)
async def issue_download(
    request: Request,
    response: Response,
    ref: str = Path(..., description="Episode id or slug"),
    payload: DownloadRequestIn = Body(...),
    viewer: ViewerContext = Depends(get_viewer_context),
    repos: Repositories = Depends(get_repositories),
    policy: AccessPolicy = Depends(get_access_policy),
    cdn: CDNLocator = Depends(get_cdn_locator),
    turnstile: TurnstileVerifier = Depends(get_turnstile_verifier),
) -> DownloadIssuedOut:
    """
    Steps
    -----
    1) Re-evaluate access with today's usage (the dialog may be stale)
    2) Reject unavailable (404) or locked (403) tiers
    3) Guests: verify the Turnstile token (400 missing, 403 rejected)
    4) Log the download, then hand out the URL
    """
    episode = await load_visible_episode(repos, ref, viewer)

    # [Step 1]
    decision, locators, _ = await _decide(episode, viewer, repos, policy, cdn)

    # [Step 2]
    quality = int(payload.quality)
    tier = decision.download_tier(quality)
    if tier is None:
        raise QualityUnavailableException(quality=quality)
    if tier.locked:
        raise DownloadLockedException(
            quality=quality,
            lock_code=tier.lock_code.value if tier.lock_code else "",
            reason=tier.reason or "Locked",
        )

    url = locators[quality]
    if not cdn.is_allowed_download_url(url):
        logger.error("Download URL for episode {} is not on an allowed host", episode.id)
        raise QualityUnavailableException(quality=quality)

    # [Step 3]
    ip = client_ip(request)
    if decision.requires_verification:
        if not payload.turnstile_token:
            raise VerificationRequiredException()
        if not await turnstile.verify(payload.turnstile_token, remote_ip=ip):
            raise VerificationFailedException()

    # [Step 4]
    await repos.downloads.record(
        DownloadEntry(
            episode_id=episode.id,
            quality=quality,
            user_id=viewer.id,
            ip_hash=hash_client_ip(ip, settings.IP_HASH_SALT.get_secret_value()),
            turnstile_token=payload.turnstile_token,
        )
    )
    logger.info(
        "Download issued | episode={} quality={} role={}",
        episode.id,
        quality,
        viewer.role.value,
    )

    set_no_store(response)
    return DownloadIssuedOut(url=url, quality=quality, label=quality_label(quality))
