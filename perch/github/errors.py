"""GitHub client errors and their closed classification.

Every failure leaving :mod:`perch.github.client` is one of the exceptions
below. Each carries an :class:`ErrorKind` assigned once, at the HTTP boundary,
so callers branch on structured data instead of matching message text.
"""

from __future__ import annotations

import enum
import typing as typ

from perch.common.time import format_relative

if typ.TYPE_CHECKING:
    import datetime as dt

_CONTENT_PREVIEW_LIMIT = 100
_HTTP_GONE = 410


class ErrorKind(enum.StrEnum):
    """Closed taxonomy of failures surfaced by the sync engine."""

    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVICE_UNAVAILABLE = "service_unavailable"
    HTTP_STATUS = "http_status"
    DECODE = "decode"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class GitHubError(RuntimeError):
    """Base class for errors raised by the GitHub client layer."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class GitHubAPIError(GitHubError):
    """Raised when GitHub returns an error response or cannot be reached.

    Attributes
    ----------
    kind
        Classification assigned from the status code or transport failure.
    status_code
        HTTP status code from the response, if one was received.
    retry_at
        When the request may be retried, for rate-limited and
        service-unavailable responses.

    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind,
        status_code: int | None = None,
        retry_at: dt.datetime | None = None,
    ) -> None:
        """Initialise with a message, kind and optional response metadata."""
        self.kind = kind
        self.status_code = status_code
        self.retry_at = retry_at
        super().__init__(message)

    @property
    def gone(self) -> bool:
        """Return True when GitHub reported the resource as removed (410)."""
        return self.status_code == _HTTP_GONE

    @classmethod
    def http_error(cls, status_code: int) -> GitHubAPIError:
        """Return an error for unclassified non-2xx responses."""
        return cls(
            f"GitHub HTTP {status_code}",
            kind=ErrorKind.HTTP_STATUS,
            status_code=status_code,
        )

    @classmethod
    def not_found(cls, status_code: int = 404, resource: str = "") -> GitHubAPIError:
        """Return an error for 404/410 responses or disabled features."""
        target = f": {resource}" if resource else ""
        return cls(
            f"GitHub resource not found (HTTP {status_code}){target}",
            kind=ErrorKind.NOT_FOUND,
            status_code=status_code,
        )

    @classmethod
    def unauthorized(cls, status_code: int | None = 401) -> GitHubAPIError:
        """Return an error for rejected or insufficient credentials."""
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        return cls(
            f"GitHub rejected the credentials{suffix}",
            kind=ErrorKind.AUTH,
            status_code=status_code,
        )

    @classmethod
    def unauthenticated(cls) -> GitHubAPIError:
        """Return an error when no access token is available."""
        return cls("No GitHub access token available", kind=ErrorKind.AUTH)

    @classmethod
    def rate_limited(
        cls, retry_at: dt.datetime, *, status_code: int = 403
    ) -> GitHubAPIError:
        """Return an error for exhausted rate-limit quota."""
        return cls(
            f"GitHub rate limit exhausted until {retry_at.isoformat()}",
            kind=ErrorKind.RATE_LIMITED,
            status_code=status_code,
            retry_at=retry_at,
        )

    @classmethod
    def service_unavailable(
        cls, retry_at: dt.datetime, *, status_code: int
    ) -> GitHubAPIError:
        """Return an error for 202 (stats being generated) and 503 responses."""
        return cls(
            f"GitHub is temporarily unavailable (HTTP {status_code})",
            kind=ErrorKind.SERVICE_UNAVAILABLE,
            status_code=status_code,
            retry_at=retry_at,
        )

    @classmethod
    def timeout(cls) -> GitHubAPIError:
        """Return an error for request timeouts."""
        return cls("GitHub request timed out", kind=ErrorKind.TRANSPORT)

    @classmethod
    def network_error(cls, detail: str) -> GitHubAPIError:
        """Return an error for DNS, connection and TLS failures."""
        return cls(f"GitHub network error: {detail}", kind=ErrorKind.TRANSPORT)

    @classmethod
    def graphql_errors(cls, errors: object) -> GitHubAPIError:
        """Return an error for GraphQL ``errors`` payloads."""
        return cls(f"GitHub GraphQL errors: {errors}", kind=ErrorKind.HTTP_STATUS)


class GitHubResponseShapeError(GitHubError):
    """Raised when a GitHub payload does not decode into the expected shape."""

    kind = ErrorKind.DECODE

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"GitHub response missing expected field: {field}")

    @classmethod
    def invalid_payload(cls, detail: str) -> GitHubResponseShapeError:
        """Return an error for payloads that fail to decode."""
        if len(detail) > _CONTENT_PREVIEW_LIMIT:
            detail = detail[:_CONTENT_PREVIEW_LIMIT] + "..."
        return cls(f"Failed to decode GitHub response: {detail}")


class GitHubConfigError(GitHubError):
    """Raised when GitHub client configuration is invalid."""

    kind = ErrorKind.CONFIGURATION

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("PERCH_GITHUB_TOKEN is required for the GitHub API")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")

    @classmethod
    def invalid_host(cls, host: str) -> GitHubConfigError:
        """Return an error for an unusable GitHub or Enterprise host."""
        return cls(f"Invalid GitHub host: {host!r}")


def error_kind(exc: BaseException) -> ErrorKind:
    """Classify any exception into the closed taxonomy.

    Exceptions raised outside the client layer map to ``UNKNOWN``.

    Examples
    --------
    >>> error_kind(GitHubAPIError.timeout())
    <ErrorKind.TRANSPORT: 'transport'>
    >>> error_kind(ValueError("boom"))
    <ErrorKind.UNKNOWN: 'unknown'>

    """
    if isinstance(exc, GitHubError):
        return exc.kind
    return ErrorKind.UNKNOWN


def status_code_of(exc: BaseException) -> int | None:
    """Return the HTTP status carried by ``exc``, if any."""
    if isinstance(exc, GitHubAPIError):
        return exc.status_code
    return None


def retry_at_of(exc: BaseException) -> dt.datetime | None:
    """Return the retry timestamp carried by ``exc``, if any."""
    if isinstance(exc, GitHubAPIError):
        return exc.retry_at
    return None


def user_facing_message(exc: BaseException, *, now: dt.datetime) -> str:
    """Map an exception to the single display string shown to users.

    Parameters
    ----------
    exc
        Failure raised by the client layer or a collaborator.
    now
        Reference time used to phrase retry and reset hints.

    Returns
    -------
    str
        Human-readable message suitable for a status line.

    """
    kind = error_kind(exc)
    retry_at = retry_at_of(exc)
    match kind:
        case ErrorKind.RATE_LIMITED if retry_at is not None:
            return f"GitHub rate limit hit; resets {format_relative(retry_at, now=now)}."
        case ErrorKind.RATE_LIMITED:
            return "GitHub rate limit hit. Try again shortly."
        case ErrorKind.SERVICE_UNAVAILABLE if retry_at is not None:
            return (
                "GitHub is generating repository data; "
                f"retry {format_relative(retry_at, now=now)}."
            )
        case ErrorKind.SERVICE_UNAVAILABLE:
            return "GitHub is temporarily unavailable. Try again shortly."
        case ErrorKind.TRANSPORT:
            return "Cannot reach GitHub host. Check your network or Enterprise URL."
        case ErrorKind.AUTH:
            return "GitHub authentication failed. Sign in again."
        case ErrorKind.NOT_FOUND:
            return (
                "Repository data unavailable. It may be renamed, deleted, or you "
                "no longer have access. Try refreshing or signing in again."
            )
        case ErrorKind.HTTP_STATUS if status_code_of(exc) is not None:
            return f"GitHub request failed (HTTP {status_code_of(exc)})."
        case ErrorKind.DECODE:
            return "GitHub returned an unexpected response."
        case _:
            return str(exc) or type(exc).__name__
