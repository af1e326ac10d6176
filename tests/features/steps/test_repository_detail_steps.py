"""Behavioural coverage for repository detail pages."""

from __future__ import annotations

import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from perch.github.errors import GitHubAPIError
from perch.github.models import BranchSummary, TagSummary
from perch.sync.detail import DetailAggregator, DetailSection
from perch.sync.observability import SyncEventLogger
from tests.helpers.sync_fakes import FakeLogger, FakeRepositoryAPI, fixed_clock, run_async

if typ.TYPE_CHECKING:
    from perch.sync.detail import RepositoryDetail


class DetailContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    api: FakeRepositoryAPI
    detail: RepositoryDetail


@scenario(
    "../repository_detail.feature",
    "Disabled discussions are silent while a failing section surfaces",
)
def test_detail_section_errors() -> None:
    """Wrap the pytest-bdd scenario."""


@pytest.fixture
def detail_context() -> DetailContext:
    """Provide an in-memory API with some section data."""
    api = FakeRepositoryAPI()
    api.detail.tags = [TagSummary("v1.0.0", "abc123")]
    api.detail.branches = [BranchSummary("main", "abc123", is_protected=True)]
    return {"api": api}


@given("a repository whose discussions are disabled")
def given_discussions_disabled(detail_context: DetailContext) -> None:
    """Discussions answer 404."""
    detail_context["api"].failures["recent_discussions"] = GitHubAPIError.not_found()


@given(parsers.parse("whose pull requests fail with HTTP {status:d}"))
def given_pulls_fail(detail_context: DetailContext, status: int) -> None:
    """Pull requests answer with a server error."""
    detail_context["api"].failures["recent_pull_requests"] = (
        GitHubAPIError.http_error(status)
    )


@when("the detail page loads")
def when_detail_loads(detail_context: DetailContext) -> None:
    """Load every section."""
    aggregator = DetailAggregator(
        detail_context["api"],
        "octo",
        "reef",
        clock=fixed_clock(),
        event_logger=SyncEventLogger(FakeLogger()),
    )
    detail_context["detail"] = run_async(aggregator.load)


@then(parsers.parse('the detail error is "{message}"'))
def then_detail_error(detail_context: DetailContext, message: str) -> None:
    """The first failing section in display order is reported."""
    assert detail_context["detail"].error == message


@then("the discussions section has no error")
def then_discussions_silent(detail_context: DetailContext) -> None:
    """Disabled discussions are not an error."""
    assert DetailSection.DISCUSSIONS not in detail_context["detail"].section_errors


@then("the other sections loaded")
def then_other_sections(detail_context: DetailContext) -> None:
    """Sections that succeeded keep their data."""
    detail = detail_context["detail"]
    assert [tag.name for tag in detail.tags] == ["v1.0.0"]
    assert [branch.name for branch in detail.branches] == ["main"]
    assert set(detail.section_errors) == {DetailSection.PULL_REQUESTS}
