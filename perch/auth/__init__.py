"""Credential storage, refresh and sign-in coordination."""

from __future__ import annotations

from .coordinator import (
    Authorizer,
    CredentialCoordinator,
    OAuthCredentialCoordinator,
    StaticTokenCoordinator,
)
from .errors import CredentialError
from .loop import CredentialRefreshLoop
from .refresher import OAuthTokenRefresher
from .tokens import ClientCredentials, InMemoryTokenStore, OAuthTokens, TokenStore

__all__ = [
    "Authorizer",
    "ClientCredentials",
    "CredentialCoordinator",
    "CredentialError",
    "CredentialRefreshLoop",
    "InMemoryTokenStore",
    "OAuthCredentialCoordinator",
    "OAuthTokenRefresher",
    "OAuthTokens",
    "StaticTokenCoordinator",
    "TokenStore",
]
