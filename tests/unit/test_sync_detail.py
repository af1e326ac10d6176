"""Unit tests for the repository detail aggregator."""

from __future__ import annotations

import asyncio
import datetime as dt

import pytest

from perch.github.errors import GitHubAPIError, GitHubConfigError
from perch.github.models import CommitList, PullRequestSummary, TagSummary
from perch.sync.detail import (
    DetailAggregator,
    DetailSection,
    section_error_message,
)
from perch.sync.observability import SyncEventLogger
from tests.helpers.sync_fakes import NOW, FakeLogger, FakeRepositoryAPI, fixed_clock


def _aggregator(
    api: FakeRepositoryAPI, logger: FakeLogger | None = None
) -> DetailAggregator:
    return DetailAggregator(
        api,
        "octo",
        "reef",
        limit=5,
        clock=fixed_clock(),
        event_logger=SyncEventLogger(logger or FakeLogger()),
    )


class TestSectionErrorMessage:
    """Per-section failure wording."""

    @pytest.mark.parametrize(
        ("section", "exc", "expected"),
        [
            (
                DetailSection.ISSUES,
                GitHubAPIError.rate_limited(NOW + dt.timedelta(minutes=3)),
                "Issues rate limited. Retry in 3 minutes.",
            ),
            (
                DetailSection.CONTRIBUTORS,
                GitHubAPIError.service_unavailable(
                    NOW + dt.timedelta(seconds=30), status_code=202
                ),
                "Contributors temporarily unavailable. Retry in 30 seconds.",
            ),
            (
                DetailSection.TAGS,
                GitHubAPIError.unauthorized(),
                "Tags unavailable. Check GitHub access, token scopes, and "
                "sign-in status.",
            ),
            (
                DetailSection.RELEASES,
                GitHubAPIError.not_found(),
                "No releases published yet.",
            ),
            (
                DetailSection.WORKFLOW_RUNS,
                GitHubAPIError.not_found(),
                "GitHub Actions data is unavailable for this repository.",
            ),
            (
                DetailSection.BRANCHES,
                GitHubAPIError.timeout(),
                "Cannot reach GitHub host. Check your network or Enterprise URL.",
            ),
            (
                DetailSection.COMMITS,
                GitHubConfigError.invalid_host("nope"),
                "GitHub host is invalid. Check the Enterprise URL in Settings.",
            ),
            (
                DetailSection.PULL_REQUESTS,
                GitHubAPIError.http_error(500),
                "Pull Requests failed (HTTP 500).",
            ),
            (
                DetailSection.ISSUES,
                RuntimeError("boom"),
                "Issues failed. boom",
            ),
        ],
    )
    def test_messages(
        self, section: DetailSection, exc: Exception, expected: str
    ) -> None:
        """Each failure kind has its own wording."""
        assert section_error_message(section, exc, now=NOW) == expected

    def test_not_found_defaults_to_repository_unavailable(self) -> None:
        """Sections without a specific message explain missing access."""
        message = section_error_message(
            DetailSection.ISSUES, GitHubAPIError.not_found(), now=NOW
        )

        assert message is not None
        assert message.startswith("Repository data unavailable.")

    def test_rate_limit_without_retry_time(self) -> None:
        """Missing retry times read as "shortly"."""
        exc = GitHubAPIError.rate_limited(NOW)
        exc.retry_at = None

        assert (
            section_error_message(DetailSection.TAGS, exc, now=NOW)
            == "Tags rate limited. Retry shortly."
        )

    @pytest.mark.parametrize("status", [404, 410])
    def test_disabled_discussions_are_suppressed(self, status: int) -> None:
        """Discussions answering 404 or 410 mean the feature is off."""
        exc = GitHubAPIError.not_found(status)

        assert section_error_message(DetailSection.DISCUSSIONS, exc, now=NOW) is None


class TestDetailAggregator:
    """Concurrent section loading."""

    @pytest.mark.asyncio
    async def test_load_fills_every_section(self) -> None:
        """Successful sections land in their fields."""
        api = FakeRepositoryAPI()
        pull = PullRequestSummary(1, "Fix", "https://x/pr/1", "octocat", NOW)
        api.detail.pull_requests = [pull]
        api.detail.tags = [TagSummary("v1", "abc")]
        api.detail.commits = CommitList(total_count=42)

        detail = await _aggregator(api).load()

        assert detail.pull_requests == [pull]
        assert detail.tags == [TagSummary("v1", "abc")]
        assert detail.commits == CommitList(total_count=42)
        assert detail.error is None
        assert detail.loaded_at == NOW
        assert len(api.calls) == 9

    @pytest.mark.asyncio
    async def test_first_failure_in_display_order_wins(self) -> None:
        """Discussions 404 is silent; the pull request failure surfaces."""
        api = FakeRepositoryAPI()
        api.detail.tags = [TagSummary("v1", "abc")]
        api.failures["recent_discussions"] = GitHubAPIError.not_found()
        api.failures["recent_pull_requests"] = GitHubAPIError.http_error(500)
        api.failures["recent_branches"] = GitHubAPIError.http_error(502)
        logger = FakeLogger()

        detail = await _aggregator(api, logger).load()

        assert detail.error == "Pull Requests failed (HTTP 500)."
        assert DetailSection.DISCUSSIONS not in detail.section_errors
        assert detail.section_errors[DetailSection.BRANCHES] == (
            "Branches failed (HTTP 502)."
        )
        assert detail.tags == [TagSummary("v1", "abc")]
        assert len(logger.messages("[sync.detail.failed] repository=octo/reef")) == 3

    @pytest.mark.asyncio
    async def test_load_is_not_reentrant(self) -> None:
        """A second load while one runs returns the current result."""
        api = FakeRepositoryAPI()
        gate = asyncio.Event()
        api.gates["recent_issues"] = gate
        aggregator = _aggregator(api)

        first = asyncio.create_task(aggregator.load())
        await asyncio.sleep(0)
        assert aggregator.is_loading is True
        current = await aggregator.load()
        gate.set()
        detail = await first

        assert current.loaded_at is None
        assert detail.loaded_at == NOW
        assert aggregator.detail is detail
        assert aggregator.is_loading is False
        assert api.calls.count("recent_issues") == 1

    def test_full_name(self) -> None:
        """The aggregator reports its repository."""
        assert _aggregator(FakeRepositoryAPI()).full_name == "octo/reef"
