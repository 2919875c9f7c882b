import uuid
from datetime import timedelta

import pytest

from streamgate.core.dependencies import get_turnstile_verifier
from streamgate.db.base_class import utcnow
from streamgate.repositories import DownloadEntry
from tests.fixtures.constants import DOWNLOAD_BASE

BASE = "/api/v1/episodes"


def _options(body):
    return {o["quality"]: o for o in body["options"]}


class _Verifier:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.calls = []

    async def verify(self, token, remote_ip=None):
        self.calls.append((token, remote_ip))
        return self.ok


@pytest.fixture
def verifier(app):
    v = _Verifier()
    app.dependency_overrides[get_turnstile_verifier] = lambda: v
    yield v
    app.dependency_overrides.pop(get_turnstile_verifier, None)


def _seed_top_tier(repos, user_id, times, when=None):
    when = when or utcnow()
    repos.downloads.entries.extend(
        DownloadEntry(episode_id="e", quality=2160, user_id=user_id, created_at=when)
        for _ in range(times)
    )


# ─────────────────────────────────────────────────────────────
# Options
# ─────────────────────────────────────────────────────────────
def test_guest_options(client, add_episode):
    ep = add_episode(days_ago=400)
    r = client.get(f"{BASE}/{ep.slug}/downloads")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["requires_verification"] is True
    assert body["daily_limit"] == 3
    assert body["used_today"] == 0

    opts = _options(body)
    assert list(opts) == [480, 720, 1080, 2160]
    assert opts[1080] == {"quality": 1080, "label": "1080p", "locked": False}
    assert opts[2160] == {
        "quality": 2160,
        "label": "4K",
        "locked": True,
        "reason": "Log in to download this quality",
        "lock_code": "LOGIN_REQUIRED",
    }


def test_guest_options_never_carry_urls(client, add_episode):
    ep = add_episode(days_ago=400)
    body = client.get(f"{BASE}/{ep.id}/downloads").json()
    assert body["requires_verification"] is True
    assert body["options"]
    assert all("url" not in o for o in body["options"])


def test_signed_in_options_carry_urls_for_unlocked_tiers(client, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=400)
    opts = _options(client.get(f"{BASE}/{ep.id}/downloads", headers=auth_headers(uid)).json())
    assert opts[1080]["url"] == f"{DOWNLOAD_BASE}/show-s01/Show.S01E01-1080p.mkv"
    assert opts[2160]["url"] == f"{DOWNLOAD_BASE}/show-s01/Show.S01E01-2160p.mkv"


def test_user_options_inside_unlock_window(client, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=3)
    body = client.get(f"{BASE}/{ep.id}/downloads", headers=auth_headers(uid)).json()
    assert body["requires_verification"] is False
    top = _options(body)[2160]
    assert top["locked"] is True
    assert top["lock_code"] == "NOT_YET_AVAILABLE"
    assert top["reason"] == "4K downloads available in 4 more days"
    assert "url" not in top


def test_user_options_at_daily_limit(client, repos, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=10)
    _seed_top_tier(repos, uid, 3)

    body = client.get(f"{BASE}/{ep.id}/downloads", headers=auth_headers(uid)).json()
    assert body["used_today"] == 3
    top = _options(body)[2160]
    assert top["lock_code"] == "DAILY_LIMIT_REACHED"
    assert top["reason"] == "Daily 4K download limit reached (3/day)"


def test_premium_options_all_unlocked(client, add_episode, add_profile, auth_headers):
    uid = add_profile(is_premium=True)
    ep = add_episode(days_ago=0)
    body = client.get(f"{BASE}/{ep.id}/downloads", headers=auth_headers(uid)).json()
    assert all(not o["locked"] and o["url"] for o in body["options"])
    assert body["used_today"] == 0


def test_download_tiers_need_download_locators(client, add_episode):
    ep = add_episode(download_filename="")
    body = client.get(f"{BASE}/{ep.id}/downloads").json()
    assert body["options"] == []


# ─────────────────────────────────────────────────────────────
# Issue
# ─────────────────────────────────────────────────────────────
def test_user_issue_records_download(client, repos, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=10)

    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160}, headers=auth_headers(uid))
    assert r.status_code == 200, r.text
    assert r.json() == {
        "url": f"{DOWNLOAD_BASE}/show-s01/Show.S01E01-2160p.mkv",
        "quality": 2160,
        "label": "4K",
    }
    assert r.headers["cache-control"] == "no-store"

    [entry] = repos.downloads.entries
    assert entry.user_id == uid
    assert entry.episode_id == ep.id
    assert entry.quality == 2160
    assert entry.ip_hash and len(entry.ip_hash) == 64


def test_top_tier_cap_applies_after_three_downloads(client, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=10)
    headers = auth_headers(uid)

    for _ in range(3):
        assert client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160}, headers=headers).status_code == 200

    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160}, headers=headers)
    assert r.status_code == 403
    body = r.json()
    assert body["code"] == "download_locked"
    assert body["details"]["lock_code"] == "DAILY_LIMIT_REACHED"
    assert body["detail"] == "Daily 4K download limit reached (3/day)"

    # lower tiers are never capped
    assert client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 1080}, headers=headers).status_code == 200


def test_locked_tier_is_403_with_reason(client, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=2)
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160}, headers=auth_headers(uid))
    assert r.status_code == 403
    assert r.json()["details"] == {
        "quality": 2160,
        "lock_code": "NOT_YET_AVAILABLE",
        "reason": "4K downloads available in 5 more days",
    }


def test_unavailable_quality_is_404(client, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(qualities=(480, 720))
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 1080}, headers=auth_headers(uid))
    assert r.status_code == 404
    assert r.json()["code"] == "quality_unavailable"


def test_invalid_body_is_422_problem(client, add_episode):
    ep = add_episode()
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": "best"})
    assert r.status_code == 422
    assert "errors" in r.json()


def test_guest_needs_verification_token(client, add_episode, verifier):
    ep = add_episode()
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 720})
    assert r.status_code == 400
    assert r.json()["code"] == "verification_required"
    assert verifier.calls == []


def test_guest_rejected_token_is_403(client, repos, add_episode, verifier):
    verifier.ok = False
    ep = add_episode()
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 720, "turnstile_token": "tok"})
    assert r.status_code == 403
    assert r.json()["code"] == "verification_failed"
    assert repos.downloads.entries == []


def test_guest_verified_download(client, repos, add_episode, verifier):
    ep = add_episode()
    r = client.post(
        f"{BASE}/{ep.id}/downloads",
        json={"quality": 720, "turnstile_token": "tok"},
        headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1"},
    )
    assert r.status_code == 200, r.text
    assert verifier.calls == [("tok", "198.51.100.7")]
    [entry] = repos.downloads.entries
    assert entry.user_id is None
    assert entry.turnstile_token == "tok"
    assert entry.ip_hash and "198.51.100.7" not in entry.ip_hash


def test_guest_top_tier_locked_before_verification(client, add_episode, verifier):
    ep = add_episode(days_ago=400)
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160, "turnstile_token": "tok"})
    assert r.status_code == 403
    assert r.json()["details"]["lock_code"] == "LOGIN_REQUIRED"
    assert verifier.calls == []


def test_signed_in_users_skip_verification(client, add_episode, add_profile, auth_headers, verifier):
    uid = add_profile()
    ep = add_episode()
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 720}, headers=auth_headers(uid))
    assert r.status_code == 200
    assert verifier.calls == []


def test_staff_download_unpublished(client, add_episode, add_profile, auth_headers):
    ep = add_episode(status="hidden", days_ago=0)
    mod = add_profile(role="moderator")
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160}, headers=auth_headers(mod))
    assert r.status_code == 200
    assert client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 720}).status_code == 404


def test_yesterdays_downloads_do_not_count(client, repos, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode(days_ago=10)
    _seed_top_tier(repos, uid, 3, when=utcnow() - timedelta(days=1, hours=1))
    r = client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 2160}, headers=auth_headers(uid))
    assert r.status_code == 200


# ─────────────────────────────────────────────────────────────
# Rate limiting
# ─────────────────────────────────────────────────────────────
def test_issue_is_rate_limited_per_user(ratelimit_on, client, add_episode, add_profile, auth_headers):
    uid = add_profile()
    ep = add_episode()
    headers = auth_headers(uid)

    statuses = [
        client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 480}, headers=headers).status_code
        for _ in range(11)
    ]
    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429

    other = auth_headers(add_profile())
    assert client.post(f"{BASE}/{ep.id}/downloads", json={"quality": 480}, headers=other).status_code == 200


def test_signed_in_without_profile_is_plain_user(client, add_episode, auth_headers):
    ep = add_episode(days_ago=10)
    r = client.get(f"{BASE}/{ep.id}/downloads", headers=auth_headers(str(uuid.uuid4())))
    assert r.status_code == 200
    assert _options(r.json())[2160]["locked"] is False
