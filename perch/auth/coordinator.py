"""Credential coordinators handed to the sync engine.

The engine needs four things from a coordinator: a non-blocking read of the
stored tokens, a refresh that may hit the network, and interactive login and
logout. Coordinators also implement
:class:`~perch.github.client.TokenProvider` so the GitHub client reads the
same tokens the refresh loop writes.
"""

from __future__ import annotations

import typing as typ

from perch.github.host import normalize_host

from .errors import CredentialError
from .tokens import ClientCredentials, InMemoryTokenStore, OAuthTokens

if typ.TYPE_CHECKING:
    from .refresher import OAuthTokenRefresher
    from .tokens import TokenStore


class CredentialCoordinator(typ.Protocol):
    """Credential lifecycle operations used by the engine."""

    def load_tokens(self) -> OAuthTokens | None:
        """Return stored tokens without blocking."""
        ...

    async def refresh_if_needed(self) -> OAuthTokens | None:
        """Refresh tokens close to expiry; return the current tokens."""
        ...

    async def login(
        self, client_id: str, client_secret: str, host: str
    ) -> OAuthTokens:
        """Run interactive sign-in and store the resulting tokens."""
        ...

    async def logout(self) -> None:
        """Forget stored credentials."""
        ...

    async def access_token(self) -> str | None:
        """Return the current access token, if any."""
        ...


class Authorizer(typ.Protocol):
    """Interactive authorization-code exchange (browser and loopback)."""

    async def authorize(
        self, *, client_id: str, client_secret: str, host: str
    ) -> OAuthTokens:
        """Return tokens for the account the user signed in with."""
        ...


class OAuthCredentialCoordinator:
    """Coordinator backed by a token store and the OAuth refresh grant."""

    def __init__(
        self,
        store: TokenStore,
        refresher: OAuthTokenRefresher,
        *,
        authorizer: Authorizer | None = None,
        client_credentials: ClientCredentials | None = None,
    ) -> None:
        """Initialise with a store, a refresher and an optional authorizer."""
        self._store = store
        self._refresher = refresher
        self._authorizer = authorizer
        self._client_credentials = client_credentials

    def load_tokens(self) -> OAuthTokens | None:
        """Return stored tokens without blocking."""
        return self._store.load()

    async def access_token(self) -> str | None:
        """Return the stored access token, if any."""
        tokens = self._store.load()
        return tokens.access_token if tokens else None

    async def refresh_if_needed(self) -> OAuthTokens | None:
        """Refresh stored tokens that are close to expiry.

        Returns
        -------
        OAuthTokens | None
            The current tokens after any refresh, or ``None`` when signed out.

        Raises
        ------
        CredentialError
            If the refresh grant fails.

        """
        tokens = self._store.load()
        if tokens is None or self._client_credentials is None:
            return tokens
        refreshed = await self._refresher.refresh_if_needed(
            tokens, self._client_credentials
        )
        if refreshed is not tokens:
            self._store.save(refreshed)
        return refreshed

    async def login(
        self, client_id: str, client_secret: str, host: str
    ) -> OAuthTokens:
        """Run the authorizer for ``host`` and store its tokens.

        Raises
        ------
        GitHubConfigError
            If ``host`` is not a usable origin.
        CredentialError
            If no authorizer is configured.

        """
        normalized = normalize_host(host)
        if self._authorizer is None:
            raise CredentialError.authorization_unavailable()
        tokens = await self._authorizer.authorize(
            client_id=client_id, client_secret=client_secret, host=normalized
        )
        self._client_credentials = ClientCredentials(
            client_id=client_id, client_secret=client_secret
        )
        self._store.save(tokens)
        return tokens

    async def logout(self) -> None:
        """Forget stored tokens and application credentials."""
        self._store.clear()
        self._client_credentials = None


class StaticTokenCoordinator:
    """Coordinator for a personal access token supplied by configuration."""

    def __init__(self, token: str | None) -> None:
        """Initialise with a fixed token; ``None`` means signed out."""
        self._store = InMemoryTokenStore(
            OAuthTokens(access_token=token) if token else None
        )

    def load_tokens(self) -> OAuthTokens | None:
        """Return the configured token."""
        return self._store.load()

    async def access_token(self) -> str | None:
        """Return the configured access token, if any."""
        tokens = self._store.load()
        return tokens.access_token if tokens else None

    async def refresh_if_needed(self) -> OAuthTokens | None:
        """Return the configured token; personal tokens are never refreshed."""
        return self._store.load()

    async def login(
        self, client_id: str, client_secret: str, host: str
    ) -> OAuthTokens:
        """Reject interactive sign-in."""
        del client_id, client_secret, host
        raise CredentialError.login_unsupported()

    async def logout(self) -> None:
        """Forget the configured token for the rest of the process."""
        self._store.clear()
