from __future__ import annotations

# ─────────────────────────────────────────────────────────────────────────────
# ▶️ Public Playback API
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends, Path, Response

from streamgate.api.http_utils import load_visible_episode, set_no_store
from streamgate.core.dependencies import (
    get_access_policy,
    get_cdn_locator,
    get_viewer_context,
)
from streamgate.repositories import Repositories, get_repositories
from streamgate.schemas.access import PlaybackOut, StreamQualityOut
from streamgate.services.access_policy import (
    AccessPolicy,
    ViewerContext,
    evaluate_access,
    quality_label,
)
from streamgate.services.cdn import CDNLocator, safe_segment

router = APIRouter(tags=["Public Playback"])
__all__ = ["router"]


@router.get(
    "/episodes/{ref}/playback",
    response_model=PlaybackOut,
    summary="Stream qualities the current viewer may play",
)
async def get_playback(
    response: Response,
    ref: str = Path(..., description="Episode id or slug"),
    viewer: ViewerContext = Depends(get_viewer_context),
    repos: Repositories = Depends(get_repositories),
    policy: AccessPolicy = Depends(get_access_policy),
    cdn: CDNLocator = Depends(get_cdn_locator),
) -> PlaybackOut:
    """
    Player manifest list for one episode.

    Only the permitted stream tiers are listed; a tier the viewer may not
    watch is simply absent (the player has no "locked" state).
    """
    episode = await load_visible_episode(repos, ref, viewer)
    locators = cdn.stream_locators(episode)
    decision = evaluate_access(locators, viewer, episode.upload_date, policy=policy)

    slug = safe_segment(episode.cdn_slug)
    qualities = [
        StreamQualityOut(
            quality=q,
            label=quality_label(q),
            url=locators[q],
            subtitle_url=cdn.subtitle_url(slug, q),
        )
        for q in decision.stream_tiers
    ]

    set_no_store(response)
    return PlaybackOut(
        episode_id=episode.id,
        role=viewer.role,
        qualities=qualities,
        thumbs_url=cdn.thumbs_url(slug) if slug else None,
        content_age_days=decision.content_age_days,
    )
