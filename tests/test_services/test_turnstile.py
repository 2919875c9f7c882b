import httpx
import pytest

from streamgate.core.config import Settings
from streamgate.services.turnstile import TurnstileVerifier

VERIFY_URL = "https://challenges.example.test/siteverify"


def _verifier(handler, secret="shh"):
    cfg = Settings(TURNSTILE_SECRET_KEY=secret, TURNSTILE_VERIFY_URL=VERIFY_URL)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TurnstileVerifier(cfg, client=client)


@pytest.mark.anyio
async def test_success_posts_secret_token_and_ip():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content.decode()
        return httpx.Response(200, json={"success": True})

    assert await _verifier(handler).verify("tok-123", remote_ip="203.0.113.9") is True
    assert seen["url"] == VERIFY_URL
    assert "secret=shh" in seen["body"]
    assert "response=tok-123" in seen["body"]
    assert "remoteip=203.0.113.9" in seen["body"]


@pytest.mark.anyio
async def test_rejected_token():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error-codes": ["invalid-input-response"]})

    assert await _verifier(handler).verify("bad") is False


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"success": True}),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json=["success"]),
        httpx.Response(200, json={"success": "true"}),
    ],
)
async def test_fail_closed_on_bad_answers(response):
    assert await _verifier(lambda request: response).verify("tok") is False


@pytest.mark.anyio
async def test_network_error_fails_closed():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    assert await _verifier(handler).verify("tok") is False


@pytest.mark.anyio
async def test_empty_token_never_calls_out():
    def handler(request):  # pragma: no cover
        raise AssertionError("should not be called")

    verifier = _verifier(handler)
    assert await verifier.verify("") is False
    assert await verifier.verify(None) is False
    assert await verifier.verify("   ") is False


@pytest.mark.anyio
async def test_disabled_without_secret_accepts_any_non_empty_token():
    verifier = TurnstileVerifier(Settings(TURNSTILE_SECRET_KEY=None))
    assert verifier.enabled is False
    assert await verifier.verify("anything") is True
    assert await verifier.verify("") is False
