from __future__ import annotations

"""
Cloudflare Turnstile verification for guest downloads.

- POSTs `secret`, `response` and (optionally) `remoteip` to the siteverify
  endpoint and trusts only `{"success": true}`.
- Disabled when `TURNSTILE_SECRET_KEY` is unset: any non-empty token passes
  (local/dev).
- Fail-closed: network errors, non-2xx answers and malformed bodies all
  return False.
"""

from typing import Optional

import httpx
from loguru import logger

from streamgate.core.config import Settings, settings as default_settings


class TurnstileVerifier:
    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        cfg = config or default_settings
        secret = cfg.TURNSTILE_SECRET_KEY
        self._secret = secret.get_secret_value() if secret is not None else ""
        self._verify_url = cfg.TURNSTILE_VERIFY_URL
        self._timeout = cfg.HTTP_TIMEOUT_SECONDS
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    async def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> bool:
        token = (token or "").strip()
        if not token:
            return False
        if not self.enabled:
            logger.debug("Turnstile disabled; accepting token without remote check")
            return True

        data = {"secret": self._secret, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip

        try:
            if self._client is not None:
                response = await self._client.post(self._verify_url, data=data, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._verify_url, data=data)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Turnstile verification request failed: {}", exc)
            return False
        except ValueError:
            logger.warning("Turnstile verification returned a non-JSON body")
            return False

        if not isinstance(body, dict) or body.get("success") is not True:
            codes = body.get("error-codes") if isinstance(body, dict) else None
            logger.info("Turnstile rejected token codes={}", codes)
            return False
        return True


__all__ = ["TurnstileVerifier"]
