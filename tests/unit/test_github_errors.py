"""Unit tests for the GitHub error taxonomy and display messages."""

from __future__ import annotations

import datetime as dt

import pytest

from perch.auth.errors import CredentialError
from perch.github.errors import (
    ErrorKind,
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    error_kind,
    retry_at_of,
    status_code_of,
    user_facing_message,
)

_NOW = dt.datetime(2024, 6, 1, 12, 0, tzinfo=dt.UTC)


class TestErrorKind:
    """Factories assign the kind once, at construction."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (GitHubAPIError.http_error(500), ErrorKind.HTTP_STATUS),
            (GitHubAPIError.not_found(), ErrorKind.NOT_FOUND),
            (GitHubAPIError.unauthorized(), ErrorKind.AUTH),
            (GitHubAPIError.unauthenticated(), ErrorKind.AUTH),
            (GitHubAPIError.rate_limited(_NOW), ErrorKind.RATE_LIMITED),
            (
                GitHubAPIError.service_unavailable(_NOW, status_code=202),
                ErrorKind.SERVICE_UNAVAILABLE,
            ),
            (GitHubAPIError.timeout(), ErrorKind.TRANSPORT),
            (GitHubAPIError.network_error("dns"), ErrorKind.TRANSPORT),
            (GitHubResponseShapeError.missing("data"), ErrorKind.DECODE),
            (GitHubConfigError.invalid_host("::"), ErrorKind.CONFIGURATION),
            (CredentialError.refresh_failed("bad_refresh_token"), ErrorKind.AUTH),
            (ValueError("boom"), ErrorKind.UNKNOWN),
        ],
    )
    def test_error_kind(self, exc: BaseException, expected: ErrorKind) -> None:
        """error_kind reads the structured kind or falls back to UNKNOWN."""
        assert error_kind(exc) is expected

    def test_gone_flag_distinguishes_410(self) -> None:
        """A 410 is NOT_FOUND with the gone flag set."""
        gone = GitHubAPIError.not_found(410)
        missing = GitHubAPIError.not_found(404)

        assert gone.kind is ErrorKind.NOT_FOUND
        assert gone.gone is True
        assert missing.gone is False

    def test_metadata_accessors_tolerate_foreign_exceptions(self) -> None:
        """Status and retry helpers return None for non-client errors."""
        assert status_code_of(RuntimeError("x")) is None
        assert retry_at_of(RuntimeError("x")) is None
        assert status_code_of(GitHubAPIError.http_error(502)) == 502
        assert retry_at_of(GitHubAPIError.rate_limited(_NOW)) == _NOW

    def test_invalid_payload_truncates_long_detail(self) -> None:
        """Decode errors keep messages short."""
        exc = GitHubResponseShapeError.invalid_payload("x" * 500)
        assert str(exc).endswith("...")
        assert len(str(exc)) < 200


class TestUserFacingMessage:
    """Kinds map to one display string each."""

    def test_rate_limit_includes_reset_time(self) -> None:
        """Rate-limit messages say when the quota resets."""
        exc = GitHubAPIError.rate_limited(_NOW + dt.timedelta(minutes=5))
        assert (
            user_facing_message(exc, now=_NOW)
            == "GitHub rate limit hit; resets in 5 minutes."
        )

    def test_service_unavailable_includes_retry_time(self) -> None:
        """202/503 messages say when to retry."""
        exc = GitHubAPIError.service_unavailable(
            _NOW + dt.timedelta(seconds=30), status_code=202
        )
        assert (
            user_facing_message(exc, now=_NOW)
            == "GitHub is generating repository data; retry in 30 seconds."
        )

    def test_transport_message(self) -> None:
        """Transport failures point at the network or Enterprise URL."""
        assert user_facing_message(GitHubAPIError.timeout(), now=_NOW) == (
            "Cannot reach GitHub host. Check your network or Enterprise URL."
        )

    def test_auth_message(self) -> None:
        """Auth failures ask the user to sign in again."""
        assert user_facing_message(GitHubAPIError.unauthorized(), now=_NOW) == (
            "GitHub authentication failed. Sign in again."
        )

    def test_not_found_message_is_structured(self) -> None:
        """NOT_FOUND is recognised by kind, not by message text."""
        message = user_facing_message(GitHubAPIError.not_found(410), now=_NOW)
        assert message.startswith("Repository data unavailable.")

    def test_http_status_message(self) -> None:
        """Unclassified statuses include the code."""
        assert user_facing_message(GitHubAPIError.http_error(500), now=_NOW) == (
            "GitHub request failed (HTTP 500)."
        )

    def test_decode_message(self) -> None:
        """Decode failures get a generic message."""
        exc = GitHubResponseShapeError.missing("data")
        assert user_facing_message(exc, now=_NOW) == (
            "GitHub returned an unexpected response."
        )

    def test_unknown_exception_uses_its_text(self) -> None:
        """Errors from outside the client keep their own message."""
        assert user_facing_message(RuntimeError("disk full"), now=_NOW) == "disk full"
