"""OAuth client-credentials token cache for outbound webhook calls."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from player_api.common.logging import log_context
from player_api.db import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CachedToken:
    access_token: str
    expires_at: datetime


class OAuthTokenCache:
    """Bearer tokens keyed by OAuth client id.

    Concurrent refreshes for one client may both hit the token endpoint; the
    last one to finish wins.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._clock = clock
        self._tokens: dict[str, CachedToken] = {}

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._tokens

    async def get_token(self, client_id: str, client_secret: str, token_url: str) -> str | None:
        cached = self._tokens.get(client_id)
        if cached is not None:
            if self._clock() < cached.expires_at:
                return cached.access_token
            self.evict(client_id)

        issued_at = self._clock()
        body = await self._request_token(client_id, client_secret, token_url)
        if body is None:
            return None

        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            logger.warning(
                "webhook.token.missing",
                extra=log_context(client_id=client_id, token_url=token_url),
            )
            return None

        expires_in = body.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            self._tokens[client_id] = CachedToken(
                access_token=access_token,
                expires_at=issued_at + timedelta(seconds=expires_in),
            )
        return access_token

    def evict(self, client_id: str) -> None:
        if self._tokens.pop(client_id, None) is not None:
            logger.debug("webhook.token.evicted", extra=log_context(client_id=client_id))

    async def _request_token(
        self, client_id: str, client_secret: str, token_url: str
    ) -> dict | None:
        payload = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        try:
            response = await self._client.post(token_url, data=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "webhook.token.request_failed",
                extra=log_context(client_id=client_id, token_url=token_url, error=str(exc)),
            )
            return None

        if response.is_error:
            logger.warning(
                "webhook.token.rejected",
                extra=log_context(client_id=client_id, status_code=response.status_code),
            )
            return None

        try:
            body = response.json()
        except ValueError:
            logger.warning("webhook.token.invalid_body", extra=log_context(client_id=client_id))
            return None
        if not isinstance(body, dict) or body.get("error"):
            logger.warning(
                "webhook.token.rejected",
                extra=log_context(
                    client_id=client_id,
                    error=body.get("error") if isinstance(body, dict) else None,
                ),
            )
            return None
        return body


__all__ = ["CachedToken", "OAuthTokenCache"]
