import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from streamgate.db.models import DownloadLog, Episode, Profile
from streamgate.repositories import (
    DownloadEntry,
    SQLDownloadLogRepository,
    SQLEpisodeRepository,
    SQLProfileRepository,
)

pytestmark = pytest.mark.anyio

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


async def _episode(db_session, **kw) -> Episode:
    ep = Episode(
        title="Show S01E01",
        slug=kw.pop("slug", "show-s01e01"),
        cdn_slug="show/s01e01",
        download_cdn_slug="show-s01",
        download_filename="Show.S01E01",
        available_qualities=[480, 720, 1080, 2160],
        upload_date=NOW - timedelta(days=3),
        status="published",
        **kw,
    )
    db_session.add(ep)
    await db_session.commit()
    return ep


async def test_episode_lookup_by_id_and_slug(db_session):
    ep = await _episode(db_session)
    repo = SQLEpisodeRepository(db_session)

    by_id = await repo.get(str(ep.id))
    by_slug = await repo.get("show-s01e01")
    assert by_id == by_slug
    assert by_id.available_qualities == (480, 720, 1080, 2160)
    assert by_id.is_published
    assert await repo.get("missing") is None
    assert await repo.get(str(uuid.uuid4())) is None


async def test_profile_lookup(db_session):
    p = Profile(username="mod", role="moderator", is_premium=True)
    db_session.add(p)
    await db_session.commit()
    repo = SQLProfileRepository(db_session)

    record = await repo.get(str(p.id))
    assert record.role == "moderator" and record.is_premium is True
    assert await repo.get(str(uuid.uuid4())) is None
    assert await repo.get("not-a-uuid") is None


async def test_download_log_counts_top_tier_since_utc_midnight(db_session):
    ep = await _episode(db_session)
    user = str(uuid.uuid4())
    other = str(uuid.uuid4())
    repo = SQLDownloadLogRepository(db_session)

    today_early = NOW.replace(hour=0, minute=5)
    yesterday = NOW - timedelta(days=1)
    for when, uid, q in [
        (today_early, user, 2160),
        (NOW - timedelta(minutes=1), user, 2160),
        (yesterday, user, 2160),
        (NOW, user, 1080),
        (NOW, other, 2160),
    ]:
        await repo.record(DownloadEntry(episode_id=str(ep.id), quality=q, user_id=uid, created_at=when))

    assert await repo.count_top_tier_today(user, 2160, now=NOW) == 2
    assert await repo.count_top_tier_today(other, 2160, now=NOW) == 1
    assert await repo.count_top_tier_today(str(uuid.uuid4()), 2160, now=NOW) == 0
    assert await repo.count_top_tier_today("guest", 2160, now=NOW) == 0


async def test_record_persists_guest_row(db_session):
    ep = await _episode(db_session)
    repo = SQLDownloadLogRepository(db_session)
    await repo.record(
        DownloadEntry(episode_id=str(ep.id), quality=720, ip_hash="abc", turnstile_token="tok")
    )

    row = (await db_session.execute(select(DownloadLog))).scalar_one()
    assert row.user_id is None
    assert row.quality == 720
    assert row.ip_hash == "abc"
    assert row.created_at is not None


async def test_record_rejects_non_uuid_episode(db_session):
    with pytest.raises(ValueError):
        await SQLDownloadLogRepository(db_session).record(DownloadEntry(episode_id="slug", quality=720))
