"""OAuth token values and the lock-guarded token store."""

from __future__ import annotations

import datetime as dt
import threading
import typing as typ

import msgspec

from perch.github.host import GITHUB_DOT_COM


class OAuthTokens(msgspec.Struct, kw_only=True, frozen=True):
    """Access and refresh tokens for one GitHub host.

    Attributes
    ----------
    access_token
        Bearer token sent with every API request.
    refresh_token
        Token exchanged for a new access token; empty for personal tokens.
    expires_at
        When ``access_token`` expires, or ``None`` if it never does.
    host
        Normalised GitHub or Enterprise origin the tokens belong to.

    """

    access_token: str
    refresh_token: str = ""
    expires_at: dt.datetime | None = None
    host: str = GITHUB_DOT_COM

    def expires_within(self, window: dt.timedelta, *, now: dt.datetime) -> bool:
        """Return True when the access token expires inside ``window``."""
        if self.expires_at is None:
            return False
        return self.expires_at - now <= window


class ClientCredentials(msgspec.Struct, kw_only=True, frozen=True):
    """OAuth application credentials used for refresh grants."""

    client_id: str
    client_secret: str


class TokenStore(typ.Protocol):
    """Persistence boundary for credentials."""

    def load(self) -> OAuthTokens | None:
        """Return the stored tokens, if any."""
        ...

    def save(self, tokens: OAuthTokens) -> None:
        """Replace the stored tokens."""
        ...

    def clear(self) -> None:
        """Forget the stored tokens."""
        ...


class InMemoryTokenStore:
    """Token store whose reads and writes are serialised by a lock.

    The refresh loop writes from its own task while request paths read
    concurrently; the lock guarantees readers see either the old or the new
    tokens, never a mixture.
    """

    def __init__(self, tokens: OAuthTokens | None = None) -> None:
        """Initialise with optional starting tokens."""
        self._lock = threading.Lock()
        self._tokens = tokens

    def load(self) -> OAuthTokens | None:
        """Return the stored tokens, if any."""
        with self._lock:
            return self._tokens

    def save(self, tokens: OAuthTokens) -> None:
        """Replace the stored tokens."""
        with self._lock:
            self._tokens = tokens

    def clear(self) -> None:
        """Forget the stored tokens."""
        with self._lock:
            self._tokens = None
