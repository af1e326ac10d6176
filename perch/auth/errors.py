"""Credential lifecycle errors."""

from __future__ import annotations

from perch.github.errors import ErrorKind, GitHubError


class CredentialError(GitHubError):
    """Raised when stored credentials cannot be obtained or refreshed.

    Credential failures classify as ``AUTH`` so the orchestrator treats them
    exactly like a rejected token.
    """

    kind = ErrorKind.AUTH

    @classmethod
    def refresh_failed(cls, detail: str) -> CredentialError:
        """Return an error when the token endpoint rejects a refresh."""
        return cls(f"OAuth token refresh failed: {detail}")

    @classmethod
    def http_error(cls, status_code: int) -> CredentialError:
        """Return an error for non-2xx token endpoint responses."""
        return cls(f"OAuth token endpoint HTTP {status_code}")

    @classmethod
    def network_error(cls, detail: str) -> CredentialError:
        """Return an error when the token endpoint cannot be reached."""
        return cls(f"OAuth token endpoint unreachable: {detail}")

    @classmethod
    def authorization_unavailable(cls) -> CredentialError:
        """Return an error when no interactive authorizer is configured."""
        return cls("Interactive sign-in is not available in this runtime")

    @classmethod
    def login_unsupported(cls) -> CredentialError:
        """Return an error for coordinators backed by a fixed token."""
        return cls("Sign-in is not supported with a static access token")
