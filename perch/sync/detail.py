"""Repository detail page: nine independently failing sections.

Each section is fetched concurrently. Successful sections fill their own
field; failures are logged and reduced to at most one user-facing message,
picked by scanning sections in display order and keeping the first failure
that produces a message.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses
import datetime as dt
import enum
import typing as typ

from perch.common.slug import repo_slug
from perch.common.time import format_relative, utcnow
from perch.github.errors import (
    ErrorKind,
    error_kind,
    retry_at_of,
    status_code_of,
)

from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    from perch.github.client import RepositoryAPI
    from perch.github.models import (
        BranchSummary,
        CommitList,
        ContributorSummary,
        DiscussionSummary,
        IssueSummary,
        PullRequestSummary,
        ReleaseSummary,
        TagSummary,
        WorkflowRunSummary,
    )

DEFAULT_SECTION_LIMIT = 20

_HTTP_NOT_FOUND = 404
_HTTP_GONE = 410

_ACCESS_HINT = "Check GitHub access, token scopes, and sign-in status."
_REPOSITORY_UNAVAILABLE = (
    "Repository data unavailable. It may be renamed, deleted, or you no longer "
    "have access. Try refreshing or signing in again."
)


class DetailSection(enum.StrEnum):
    """Detail page sections, in display order."""

    PULL_REQUESTS = "Pull Requests"
    ISSUES = "Issues"
    RELEASES = "Releases"
    WORKFLOW_RUNS = "Workflow Runs"
    COMMITS = "Commits"
    DISCUSSIONS = "Discussions"
    TAGS = "Tags"
    BRANCHES = "Branches"
    CONTRIBUTORS = "Contributors"


_NOT_FOUND_MESSAGES: dict[DetailSection, str] = {
    DetailSection.RELEASES: "No releases published yet.",
    DetailSection.DISCUSSIONS: "Discussions are disabled for this repository.",
    DetailSection.WORKFLOW_RUNS: (
        "GitHub Actions data is unavailable for this repository."
    ),
}


def _retry_phrase(exc: BaseException, now: dt.datetime) -> str:
    retry_at = retry_at_of(exc)
    return format_relative(retry_at, now=now) if retry_at is not None else "shortly"


def section_error_message(
    section: DetailSection, exc: BaseException, *, now: dt.datetime
) -> str | None:
    """Return the display message for a failed section, or None to suppress.

    Parameters
    ----------
    section
        Section whose fetch failed.
    exc
        The failure.
    now
        Reference time for retry hints.

    Returns
    -------
    str | None
        ``None`` when the failure means "feature disabled" rather than an
        error (discussions answering 404 or 410).

    """
    kind = error_kind(exc)
    status = status_code_of(exc)

    if section is DetailSection.DISCUSSIONS and status in {
        _HTTP_NOT_FOUND,
        _HTTP_GONE,
    }:
        return None

    match kind:
        case ErrorKind.RATE_LIMITED:
            return f"{section} rate limited. Retry {_retry_phrase(exc, now)}."
        case ErrorKind.SERVICE_UNAVAILABLE:
            return f"{section} temporarily unavailable. Retry {_retry_phrase(exc, now)}."
        case ErrorKind.AUTH:
            return f"{section} unavailable. {_ACCESS_HINT}"
        case ErrorKind.NOT_FOUND:
            return _NOT_FOUND_MESSAGES.get(section, _REPOSITORY_UNAVAILABLE)
        case ErrorKind.TRANSPORT:
            return "Cannot reach GitHub host. Check your network or Enterprise URL."
        case ErrorKind.CONFIGURATION:
            return "GitHub host is invalid. Check the Enterprise URL in Settings."
        case ErrorKind.HTTP_STATUS if status is not None:
            return f"{section} failed (HTTP {status})."
        case _:
            return f"{section} failed. {exc}"


@dataclasses.dataclass(slots=True)
class RepositoryDetail:
    """Result of one detail load; each section is filled independently."""

    pull_requests: list[PullRequestSummary] = dataclasses.field(default_factory=list)
    issues: list[IssueSummary] = dataclasses.field(default_factory=list)
    releases: list[ReleaseSummary] = dataclasses.field(default_factory=list)
    workflow_runs: list[WorkflowRunSummary] = dataclasses.field(default_factory=list)
    commits: CommitList | None = None
    discussions: list[DiscussionSummary] = dataclasses.field(default_factory=list)
    tags: list[TagSummary] = dataclasses.field(default_factory=list)
    branches: list[BranchSummary] = dataclasses.field(default_factory=list)
    contributors: list[ContributorSummary] = dataclasses.field(default_factory=list)
    error: str | None = None
    section_errors: dict[DetailSection, str] = dataclasses.field(default_factory=dict)
    loaded_at: dt.datetime | None = None


_SECTION_FIELDS: tuple[tuple[DetailSection, str], ...] = (
    (DetailSection.PULL_REQUESTS, "pull_requests"),
    (DetailSection.ISSUES, "issues"),
    (DetailSection.RELEASES, "releases"),
    (DetailSection.WORKFLOW_RUNS, "workflow_runs"),
    (DetailSection.COMMITS, "commits"),
    (DetailSection.DISCUSSIONS, "discussions"),
    (DetailSection.TAGS, "tags"),
    (DetailSection.BRANCHES, "branches"),
    (DetailSection.CONTRIBUTORS, "contributors"),
)


class DetailAggregator:
    """Load every detail section of one repository.

    ``load`` is not reentrant: calling it while a load is running returns the
    current result without starting another.

    Parameters
    ----------
    client
        Remote API providing the section fetches.
    owner, name
        Repository to load.
    limit
        Maximum items per section.

    """

    def __init__(  # noqa: PLR0913 - explicit collaborators
        self,
        client: RepositoryAPI,
        owner: str,
        name: str,
        *,
        limit: int = DEFAULT_SECTION_LIMIT,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Initialise the aggregator for one repository."""
        self._client = client
        self._owner = owner
        self._name = name
        self._limit = limit
        self._clock = clock
        self._events = event_logger or SyncEventLogger()
        self._detail = RepositoryDetail()
        self._is_loading = False

    @property
    def full_name(self) -> str:
        """Return ``owner/name`` of the repository."""
        return repo_slug(self._owner, self._name)

    @property
    def is_loading(self) -> bool:
        """Return True while a load is running."""
        return self._is_loading

    @property
    def detail(self) -> RepositoryDetail:
        """Return the latest completed result."""
        return self._detail

    def _fetches(self) -> list[cabc.Awaitable[object]]:
        owner, name, limit = self._owner, self._name, self._limit
        client = self._client
        return [
            client.recent_pull_requests(owner, name, limit),
            client.recent_issues(owner, name, limit),
            client.recent_releases(owner, name, limit),
            client.recent_workflow_runs(owner, name, limit),
            client.recent_commits(owner, name, limit),
            client.recent_discussions(owner, name, limit),
            client.recent_tags(owner, name, limit),
            client.recent_branches(owner, name, limit),
            client.top_contributors(owner, name, limit),
        ]

    async def load(self) -> RepositoryDetail:
        """Fetch all sections concurrently and return the combined result."""
        if self._is_loading:
            return self._detail
        self._is_loading = True
        try:
            gathered = await asyncio.gather(*self._fetches(), return_exceptions=True)
            now = self._clock()
            detail = RepositoryDetail(loaded_at=now)
            for (section, field), outcome in zip(_SECTION_FIELDS, gathered, strict=True):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    self._record_failure(detail, section, outcome, now)
                    continue
                setattr(detail, field, outcome)
            self._detail = detail
            return detail
        finally:
            self._is_loading = False

    def _record_failure(
        self,
        detail: RepositoryDetail,
        section: DetailSection,
        exc: Exception,
        now: dt.datetime,
    ) -> None:
        self._events.log_detail_failed(
            full_name=self.full_name, section=section, error=exc
        )
        message = section_error_message(section, exc, now=now)
        if message is None:
            return
        detail.section_errors[section] = message
        if detail.error is None:
            detail.error = message


__all__ = [
    "DetailAggregator",
    "DetailSection",
    "RepositoryDetail",
    "section_error_message",
]
