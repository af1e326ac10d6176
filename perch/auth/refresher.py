"""OAuth refresh-token grant."""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt

import httpx
import msgspec

from perch.common.time import utcnow

from .errors import CredentialError
from .tokens import ClientCredentials, OAuthTokens

_REFRESH_WINDOW = dt.timedelta(seconds=60)
_DEFAULT_EXPIRES_IN = 3600
_HTTP_ERROR_STATUS_THRESHOLD = 400


class _TokenResponse(msgspec.Struct, kw_only=True):
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    error: str | None = None
    error_description: str | None = None


class OAuthTokenRefresher:
    """Exchange refresh tokens at ``{host}/login/oauth/access_token``.

    Parameters
    ----------
    http_client
        Optional ``httpx.AsyncClient`` for testing. When omitted the instance
        creates and owns its own client.
    clock
        Source of "now" used for the expiry window and new expiry times.

    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
        timeout_s: float = 20.0,
    ) -> None:
        """Initialise the refresher."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)
        self._clock = clock

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def refresh_if_needed(
        self, tokens: OAuthTokens, credentials: ClientCredentials
    ) -> OAuthTokens:
        """Return fresh tokens, refreshing only when expiry is near.

        Tokens with no expiry, no refresh token, or more than a minute of
        validity left are returned unchanged.

        Raises
        ------
        CredentialError
            If the token endpoint is unreachable or rejects the grant.

        """
        now = self._clock()
        if not tokens.refresh_token or not tokens.expires_within(
            _REFRESH_WINDOW, now=now
        ):
            return tokens

        try:
            response = await self._client.post(
                f"{tokens.host}/login/oauth/access_token",
                data={
                    "client_id": credentials.client_id,
                    "client_secret": credentials.client_secret,
                    "grant_type": "refresh_token",
                    "refresh_token": tokens.refresh_token,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as exc:
            raise CredentialError.network_error(str(exc)) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise CredentialError.http_error(response.status_code)
        try:
            payload = msgspec.json.decode(response.content, type=_TokenResponse)
        except msgspec.DecodeError as exc:
            raise CredentialError.refresh_failed(str(exc)) from exc
        if payload.error or not payload.access_token:
            raise CredentialError.refresh_failed(
                payload.error_description or payload.error or "missing access_token"
            )

        expires_in = payload.expires_in or _DEFAULT_EXPIRES_IN
        return OAuthTokens(
            access_token=payload.access_token,
            refresh_token=payload.refresh_token or tokens.refresh_token,
            expires_at=now + dt.timedelta(seconds=expires_in),
            host=tokens.host,
        )
