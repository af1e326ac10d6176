"""In-memory collaborators and builders for sync engine tests."""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import typing as typ

from perch.auth.tokens import OAuthTokens
from perch.github.models import (
    ActivityEvent,
    ActivityScope,
    CommitList,
    CommitSummary,
    HeatmapCell,
    Repository,
    UserIdentity,
)

if typ.TYPE_CHECKING:
    from perch.github.models import (
        BranchSummary,
        ContributorSummary,
        DiscussionSummary,
        IssueSummary,
        PullRequestSummary,
        ReleaseSummary,
        TagSummary,
        WorkflowRunSummary,
    )

NOW = dt.datetime(2024, 6, 1, 12, 0, tzinfo=dt.UTC)


def fixed_clock(moment: dt.datetime = NOW) -> typ.Callable[[], dt.datetime]:
    """Return a clock that always reads ``moment``."""
    return lambda: moment


def run_async[T](coro_func: typ.Callable[[], typ.Coroutine[typ.Any, typ.Any, T]]) -> T:
    """Execute an async callable within the test context."""
    return asyncio.run(coro_func())


def make_repo(  # noqa: PLR0913 - test builder mirrors the record
    full_name: str,
    *,
    stars: int = 0,
    open_issues: int = 0,
    open_pulls: int = 0,
    pushed_at: dt.datetime | None = NOW,
    is_fork: bool = False,
    is_archived: bool = False,
    detailed: bool = False,
    activity_events: tuple[ActivityEvent, ...] = (),
) -> Repository:
    """Build a repository record from ``owner/name``."""
    owner, name = full_name.split("/")
    return Repository(
        owner=owner,
        name=name,
        stars=stars,
        open_issues=open_issues,
        open_pulls=open_pulls,
        pushed_at=pushed_at,
        is_fork=is_fork,
        is_archived=is_archived,
        detailed=detailed,
        activity_events=activity_events,
        latest_activity=activity_events[0] if activity_events else None,
    )


def make_event(
    url: str,
    *,
    actor: str = "octocat",
    occurred_at: dt.datetime = NOW,
    title: str = "event",
) -> ActivityEvent:
    """Build an activity event."""
    return ActivityEvent(title=title, actor=actor, occurred_at=occurred_at, url=url)


class FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((str(level), message, exc_info, stack_info))
        return message

    def messages(self, fragment: str = "") -> list[str]:
        """Return logged messages containing ``fragment``."""
        return [message for _, message, _, _ in self.calls if fragment in message]


@dataclasses.dataclass
class DetailResponses:
    """Per-section results returned by :class:`FakeRepositoryAPI`."""

    pull_requests: list[PullRequestSummary] = dataclasses.field(default_factory=list)
    issues: list[IssueSummary] = dataclasses.field(default_factory=list)
    releases: list[ReleaseSummary] = dataclasses.field(default_factory=list)
    workflow_runs: list[WorkflowRunSummary] = dataclasses.field(default_factory=list)
    commits: CommitList = dataclasses.field(default_factory=CommitList)
    discussions: list[DiscussionSummary] = dataclasses.field(default_factory=list)
    tags: list[TagSummary] = dataclasses.field(default_factory=list)
    branches: list[BranchSummary] = dataclasses.field(default_factory=list)
    contributors: list[ContributorSummary] = dataclasses.field(default_factory=list)


class FakeRepositoryAPI:
    """Scriptable in-memory implementation of the remote API.

    ``failures`` maps a method name (or ``full_repository:owner/name``) to the
    exception that call raises. ``gates`` maps a method name to an event the
    call waits on before answering.
    """

    def __init__(self, *, user: UserIdentity | None = None) -> None:
        self.user = user or UserIdentity("octocat")
        self.listed: list[Repository] = []
        self.full: dict[str, Repository] = {}
        self.activity: list[ActivityEvent] = []
        self.commit_events: list[CommitSummary] = []
        self.heatmap: list[HeatmapCell] = []
        self.search_results: list[Repository] = []
        self.detail = DetailResponses()
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []
        self.reset_at: dt.datetime | None = None
        self.active_full_fetches = 0
        self.peak_full_fetches = 0

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    async def current_user(self) -> UserIdentity:
        await self._enter("current_user")
        return self.user

    async def repository_list(self, limit: int) -> list[Repository]:
        await self._enter("repository_list")
        return self.listed[:limit]

    async def recent_repositories(self, limit: int) -> list[Repository]:
        await self._enter("recent_repositories")
        return self.listed[:limit]

    async def search_repositories(self, query: str) -> list[Repository]:
        await self._enter("search_repositories")
        needle = query.strip().lower()
        return [repo for repo in self.search_results if needle in repo.key]

    async def full_repository(self, owner: str, name: str) -> Repository:
        key = f"{owner}/{name}".lower()
        self.active_full_fetches += 1
        self.peak_full_fetches = max(self.peak_full_fetches, self.active_full_fetches)
        try:
            await self._enter("full_repository")
            await asyncio.sleep(0)
            failure = self.failures.get(f"full_repository:{key}")
            if failure is not None:
                raise failure
            if key not in self.full:
                msg = f"no full record for {key}"
                raise LookupError(msg)
            return self.full[key]
        finally:
            self.active_full_fetches -= 1

    async def recent_pull_requests(
        self, owner: str, name: str, limit: int
    ) -> list[PullRequestSummary]:
        await self._enter("recent_pull_requests")
        return self.detail.pull_requests[:limit]

    async def recent_issues(
        self, owner: str, name: str, limit: int
    ) -> list[IssueSummary]:
        await self._enter("recent_issues")
        return self.detail.issues[:limit]

    async def recent_releases(
        self, owner: str, name: str, limit: int
    ) -> list[ReleaseSummary]:
        await self._enter("recent_releases")
        return self.detail.releases[:limit]

    async def recent_workflow_runs(
        self, owner: str, name: str, limit: int
    ) -> list[WorkflowRunSummary]:
        await self._enter("recent_workflow_runs")
        return self.detail.workflow_runs[:limit]

    async def recent_commits(self, owner: str, name: str, limit: int) -> CommitList:
        await self._enter("recent_commits")
        return self.detail.commits

    async def recent_discussions(
        self, owner: str, name: str, limit: int
    ) -> list[DiscussionSummary]:
        await self._enter("recent_discussions")
        return self.detail.discussions[:limit]

    async def recent_tags(self, owner: str, name: str, limit: int) -> list[TagSummary]:
        await self._enter("recent_tags")
        return self.detail.tags[:limit]

    async def recent_branches(
        self, owner: str, name: str, limit: int
    ) -> list[BranchSummary]:
        await self._enter("recent_branches")
        return self.detail.branches[:limit]

    async def top_contributors(
        self, owner: str, name: str, limit: int
    ) -> list[ContributorSummary]:
        await self._enter("top_contributors")
        return self.detail.contributors[:limit]

    async def user_contribution_heatmap(self, login: str) -> list[HeatmapCell]:
        await self._enter("user_contribution_heatmap")
        return list(self.heatmap)

    async def user_activity_events(
        self, username: str, scope: ActivityScope, limit: int
    ) -> list[ActivityEvent]:
        await self._enter("user_activity_events")
        return self.activity[:limit]

    async def user_commit_events(
        self, username: str, scope: ActivityScope, limit: int
    ) -> list[CommitSummary]:
        await self._enter("user_commit_events")
        return self.commit_events[:limit]

    def rate_limit_reset(self, now: dt.datetime) -> dt.datetime | None:
        if self.reset_at is None or self.reset_at <= now:
            return None
        return self.reset_at

    def rate_limit_message(self, now: dt.datetime) -> str | None:
        if self.rate_limit_reset(now) is None:
            return None
        return "GitHub rate limit hit"


class FakeCredentials:
    """Credential coordinator whose health check can be scripted."""

    def __init__(self, tokens: OAuthTokens | None = None) -> None:
        self.tokens = tokens
        self.refresh_error: Exception | None = None
        self.refresh_gate: asyncio.Event | None = None
        self.refresh_calls = 0
        self.logout_calls = 0
        self.login_error: Exception | None = None
        self.login_calls: list[tuple[str, str, str]] = []

    @classmethod
    def signed_in(cls) -> FakeCredentials:
        """Return a coordinator holding a valid token."""
        return cls(OAuthTokens(access_token="token"))

    def load_tokens(self) -> OAuthTokens | None:
        return self.tokens

    async def refresh_if_needed(self) -> OAuthTokens | None:
        self.refresh_calls += 1
        if self.refresh_gate is not None:
            await self.refresh_gate.wait()
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.tokens

    async def login(self, client_id: str, client_secret: str, host: str) -> OAuthTokens:
        self.login_calls.append((client_id, client_secret, host))
        if self.login_error is not None:
            raise self.login_error
        self.tokens = OAuthTokens(access_token="fresh", host=host)
        return self.tokens

    async def logout(self) -> None:
        self.logout_calls += 1
        self.tokens = None

    async def access_token(self) -> str | None:
        return self.tokens.access_token if self.tokens else None
