from types import SimpleNamespace

import pytest

from streamgate.core.config import Settings
from streamgate.services.cdn import CDNLocator, safe_segment


@pytest.fixture
def cdn():
    cfg = Settings(
        CDN_STREAM_BASE="https://stream.example.test/",
        CDN_DOWNLOAD_BASE="dl.example.test",
        ALLOWED_DOWNLOAD_HOSTS="Mirror.Example.Test",
    )
    return CDNLocator(cfg)


def _episode(**kw):
    data = dict(
        cdn_slug="show/s01e01",
        download_cdn_slug="show-s01",
        download_filename="Show.S01E01",
        available_qualities=[480, 720, 1080, 2160],
    )
    data.update(kw)
    return SimpleNamespace(**data)


def test_url_layout(cdn):
    assert cdn.stream_url("show/s01e01", 720) == "https://stream.example.test/show/s01e01/720/index.m3u8"
    assert cdn.subtitle_url("show/s01e01", 720) == "https://stream.example.test/show/s01e01/720/index_vtt.m3u8"
    assert cdn.thumbs_url("show/s01e01") == "https://stream.example.test/show/s01e01/720/thumbs/thumbs.vtt"
    assert cdn.download_url("show-s01", "Show.S01E01", 2160) == "https://dl.example.test/show-s01/Show.S01E01-2160p.mkv"


def test_segments_are_url_quoted(cdn):
    assert cdn.download_url("my show", "Ep 1", 480) == "https://dl.example.test/my%20show/Ep%201-480p.mkv"


def test_locator_maps_cover_declared_qualities(cdn):
    ep = _episode(available_qualities=[720, "1080", 720, 0, "x", True])
    assert list(cdn.stream_locators(ep)) == [720, 1080]
    assert cdn.download_locators(ep)[1080].endswith("/show-s01/Show.S01E01-1080p.mkv")


def test_missing_download_filename_empties_download_locators(cdn):
    ep = _episode(download_filename="")
    assert set(cdn.download_locators(ep).values()) == {""}
    assert all(cdn.stream_locators(ep).values())


@pytest.mark.parametrize("slug", ["", "   ", "/abs/path", "../etc", "a/../b", "a\\b", None, 42])
def test_unusable_slugs_give_empty_locators(cdn, slug):
    ep = _episode(cdn_slug=slug)
    assert set(cdn.stream_locators(ep).values()) == {""}


def test_safe_segment_trims():
    assert safe_segment(" show/s01/ ") == "show/s01"
    assert safe_segment("..") == ""


@pytest.mark.parametrize(
    "url, ok",
    [
        ("https://dl.example.test/show-s01/Show.S01E01-480p.mkv", True),
        ("https://mirror.example.test/a.mkv", True),
        ("http://dl.example.test/a.mkv", False),
        ("https://evil.example.test/a.mkv", False),
        ("https://dl.example.test/../secret.mkv", False),
        ("", False),
        ("not a url", False),
    ],
)
def test_is_allowed_download_url(cdn, url, ok):
    assert cdn.is_allowed_download_url(url) is ok


@pytest.mark.parametrize(
    "path, expected",
    [
        ("show-s01/Show.S01E01-720p.mkv", "https://dl.example.test/show-s01/Show.S01E01-720p.mkv"),
        ("  show/My File.mkv ", "https://dl.example.test/show/My%20File.mkv"),
        ("../x.mkv", ""),
        ("show/..hidden.mkv", ""),
        ("/abs.mkv", ""),
        ("show\\x.mkv", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_download_url_for_legacy_path(cdn, path, expected):
    assert cdn.download_url_for_path(path) == expected
