"""Asynchronous GitHub REST and GraphQL client used by the sync engine."""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses
import datetime as dt
import typing as typ

import httpx
import msgspec

from perch.common.slug import repo_slug
from perch.common.time import format_relative, utcnow

from .errors import (
    ErrorKind,
    GitHubAPIError,
    GitHubResponseShapeError,
    error_kind,
    retry_at_of,
    user_facing_message,
)
from .host import GITHUB_DOT_COM, is_github_dot_com, normalize_host
from .models import (
    ActivityEvent,
    ActivityScope,
    BranchSummary,
    CommitList,
    CommitSummary,
    ContributorSummary,
    DiscussionSummary,
    HeatmapCell,
    IssueSummary,
    PullRequestSummary,
    ReleaseSummary,
    Repository,
    TagSummary,
    UserIdentity,
    WorkflowRunSummary,
)
from .wire import (
    AccountPayload,
    BranchPayload,
    CommitPayload,
    ContributionUserNode,
    ContributorPayload,
    CountSearchPayload,
    DiscussionRepositoryNode,
    EventPayload,
    GraphQLEnvelope,
    IssuePayload,
    PullRequestPayload,
    ReleasePayload,
    RepositoryPayload,
    RepositorySearchPayload,
    TagPayload,
    WorkflowRunsPayload,
)


class TokenProvider(typ.Protocol):
    """Capability that yields the current access token without blocking."""

    async def access_token(self) -> str | None:
        """Return the current token, or None when signed out."""
        ...


class RepositoryAPI(typ.Protocol):
    """Remote operations the sync engine and detail aggregator depend on."""

    async def current_user(self) -> UserIdentity:
        """Return the signed-in account."""
        ...

    async def repository_list(self, limit: int) -> list[Repository]:
        """Return shallow records for the user's repositories."""
        ...

    async def full_repository(self, owner: str, name: str) -> Repository:
        """Return the full record for one repository."""
        ...

    async def recent_pull_requests(
        self, owner: str, name: str, limit: int
    ) -> list[PullRequestSummary]:
        """Return recently updated open pull requests."""
        ...

    async def recent_issues(
        self, owner: str, name: str, limit: int
    ) -> list[IssueSummary]:
        """Return recently updated open issues."""
        ...

    async def recent_releases(
        self, owner: str, name: str, limit: int
    ) -> list[ReleaseSummary]:
        """Return recent releases."""
        ...

    async def recent_workflow_runs(
        self, owner: str, name: str, limit: int
    ) -> list[WorkflowRunSummary]:
        """Return recent GitHub Actions runs."""
        ...

    async def recent_commits(self, owner: str, name: str, limit: int) -> CommitList:
        """Return recent commits on the default branch."""
        ...

    async def recent_discussions(
        self, owner: str, name: str, limit: int
    ) -> list[DiscussionSummary]:
        """Return recent discussions; raises NOT_FOUND when disabled."""
        ...

    async def recent_tags(self, owner: str, name: str, limit: int) -> list[TagSummary]:
        """Return recent tags."""
        ...

    async def recent_branches(
        self, owner: str, name: str, limit: int
    ) -> list[BranchSummary]:
        """Return branches."""
        ...

    async def top_contributors(
        self, owner: str, name: str, limit: int
    ) -> list[ContributorSummary]:
        """Return contributors ranked by commit count."""
        ...

    async def user_contribution_heatmap(self, login: str) -> list[HeatmapCell]:
        """Return the contribution calendar for ``login``."""
        ...

    async def user_activity_events(
        self, username: str, scope: ActivityScope, limit: int
    ) -> list[ActivityEvent]:
        """Return the user's activity feed."""
        ...

    async def user_commit_events(
        self, username: str, scope: ActivityScope, limit: int
    ) -> list[CommitSummary]:
        """Return commits pushed in the user's activity feed."""
        ...

    def rate_limit_message(self, now: dt.datetime) -> str | None:
        """Return a display message while a rate-limit reset is pending."""
        ...

    def rate_limit_reset(self, now: dt.datetime) -> dt.datetime | None:
        """Return the pending rate-limit reset time, if any."""
        ...

    async def search_repositories(self, query: str) -> list[Repository]:
        """Search repositories by free text."""
        ...

    async def recent_repositories(self, limit: int) -> list[Repository]:
        """Return repositories the user pushed to most recently."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubClientConfig:
    """Endpoints and transport settings for :class:`GitHubRestClient`."""

    api_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    web_url: str = GITHUB_DOT_COM
    timeout_s: float = 20.0
    user_agent: str = "perch/0.1"

    @classmethod
    def for_host(cls, host: str, *, timeout_s: float = 20.0) -> GitHubClientConfig:
        """Derive API endpoints for GitHub or a GitHub Enterprise host.

        Raises
        ------
        GitHubConfigError
            If ``host`` is not a usable origin.

        """
        web_url = normalize_host(host)
        if is_github_dot_com(web_url):
            return cls(timeout_s=timeout_s)
        return cls(
            api_url=f"{web_url}/api/v3",
            graphql_url=f"{web_url}/api/graphql",
            web_url=web_url,
            timeout_s=timeout_s,
        )


_DISCUSSIONS_QUERY = """
query($owner: String!, $name: String!, $first: Int!) {
  repository(owner: $owner, name: $name) {
    hasDiscussionsEnabled
    discussions(first: $first, orderBy: {field: UPDATED_AT, direction: DESC}) {
      nodes {
        title
        url
        updatedAt
        author { login }
        comments { totalCount }
        category { name }
      }
    }
  }
}
"""

_CONTRIBUTIONS_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""

_HTTP_ACCEPTED = 202
_HTTP_NO_CONTENT = 204
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_GONE = 410
_HTTP_RATE_LIMITED = 429
_HTTP_SERVICE_UNAVAILABLE = 503
_HTTP_ERROR_STATUS_THRESHOLD = 400

_MAX_PAGE_SIZE = 100
_SEARCH_PAGE_SIZE = 20
_REPOSITORY_EVENT_LIMIT = 10
_DEFAULT_RATE_LIMIT_WAIT = dt.timedelta(seconds=60)
_DEFAULT_STATS_WAIT = dt.timedelta(seconds=90)

_EVENT_VERBS: dict[str, str] = {
    "PushEvent": "Pushed to",
    "PullRequestEvent": "Pull request in",
    "PullRequestReviewEvent": "Reviewed pull request in",
    "PullRequestReviewCommentEvent": "Commented on pull request in",
    "IssuesEvent": "Issue in",
    "IssueCommentEvent": "Commented in",
    "ReleaseEvent": "Released",
    "CreateEvent": "Created",
    "DeleteEvent": "Deleted in",
    "ForkEvent": "Forked",
    "WatchEvent": "Starred",
    "PublicEvent": "Made public",
}

_URL_BEARING_MEMBERS = ("comment", "review", "pull_request", "issue", "release")


def _get_nested(data: dict[str, typ.Any], *keys: str) -> object:
    """Traverse a nested dict path, returning None for missing keys."""
    current: object = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = typ.cast("dict[str, typ.Any]", current).get(key)
    return current


def _page_size(limit: int) -> int:
    return max(1, min(limit, _MAX_PAGE_SIZE))


def _decode[T](content: bytes, target: type[T]) -> T:
    try:
        return msgspec.json.decode(content, type=target)
    except msgspec.DecodeError as exc:
        raise GitHubResponseShapeError.invalid_payload(str(exc)) from exc


def _convert[T](data: object, target: type[T]) -> T:
    try:
        return msgspec.convert(data, type=target)
    except msgspec.ValidationError as exc:
        raise GitHubResponseShapeError.invalid_payload(str(exc)) from exc


def _header_int(response: httpx.Response, name: str) -> int | None:
    raw = response.headers.get(name)
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw)


def _retry_after(
    response: httpx.Response, now: dt.datetime, default: dt.timedelta
) -> dt.datetime:
    seconds = _header_int(response, "Retry-After")
    if seconds is None:
        return now + default
    return now + dt.timedelta(seconds=seconds)


def _rate_limit_reset(response: httpx.Response, now: dt.datetime) -> dt.datetime:
    epoch = _header_int(response, "X-RateLimit-Reset")
    if epoch is not None:
        return dt.datetime.fromtimestamp(epoch, dt.UTC)
    return _retry_after(response, now, _DEFAULT_RATE_LIMIT_WAIT)


def _quota_exhausted(response: httpx.Response) -> bool:
    return _header_int(response, "X-RateLimit-Remaining") == 0


def _repository_from_payload(payload: RepositoryPayload) -> Repository:
    return Repository(
        owner=payload.owner.login,
        name=payload.name,
        stars=payload.stargazers_count,
        forks=payload.forks_count,
        open_issues=payload.open_issues_count,
        pushed_at=payload.pushed_at,
        is_fork=payload.fork,
        is_archived=payload.archived,
    )


def _event_url(event: EventPayload, web_url: str) -> str:
    for member in _URL_BEARING_MEMBERS:
        url = _get_nested(event.payload, member, "html_url")
        if isinstance(url, str):
            return url
    return f"{web_url}/{event.repo.name}"


def _event_title(event: EventPayload) -> str:
    for member in ("pull_request", "issue"):
        title = _get_nested(event.payload, member, "title")
        if isinstance(title, str):
            return title
    release_name = _get_nested(event.payload, "release", "name")
    if isinstance(release_name, str) and release_name:
        return f"Released {release_name}"
    verb = _EVENT_VERBS.get(event.type, event.type.removesuffix("Event"))
    return f"{verb} {event.repo.name}"


def _activity_from_event(event: EventPayload, web_url: str) -> ActivityEvent:
    return ActivityEvent(
        title=_event_title(event),
        actor=event.actor.login,
        occurred_at=event.created_at,
        url=_event_url(event, web_url),
        kind=event.type,
        repository=event.repo.name,
    )


def _commits_from_push(event: EventPayload, web_url: str) -> list[CommitSummary]:
    commits = event.payload.get("commits")
    if event.type != "PushEvent" or not isinstance(commits, list):
        return []
    summaries: list[CommitSummary] = []
    for commit in commits:
        if not isinstance(commit, dict):
            continue
        sha = commit.get("sha")
        if not isinstance(sha, str):
            continue
        message = commit.get("message")
        author = _get_nested(commit, "author", "name")
        summaries.append(
            CommitSummary(
                sha=sha,
                message=message if isinstance(message, str) else "",
                author=author if isinstance(author, str) else event.actor.login,
                occurred_at=event.created_at,
                url=f"{web_url}/{event.repo.name}/commit/{sha}",
                repository=event.repo.name,
            )
        )
    return summaries


def _last_page(response: httpx.Response) -> int | None:
    last = response.links.get("last")
    if not last or "url" not in last:
        return None
    page = httpx.URL(last["url"]).params.get("page")
    return int(page) if page is not None and page.isdigit() else None


class GitHubRestClient:
    """GitHub client built on ``httpx`` that satisfies :class:`RepositoryAPI`.

    Every non-success response or transport failure is mapped once to a
    :class:`~perch.github.errors.GitHubAPIError` carrying an
    :class:`~perch.github.errors.ErrorKind`. Rate-limit resets observed on
    any response are remembered so :meth:`rate_limit_message` can report them
    after the failing call has returned.

    Parameters
    ----------
    config
        Endpoint and transport configuration.
    token_provider
        Capability queried for the current access token on every request.
    http_client
        Optional ``httpx.AsyncClient`` for testing. When omitted the instance
        creates and owns its own client.
    clock
        Source of "now", injectable for deterministic tests.

    """

    def __init__(
        self,
        config: GitHubClientConfig,
        *,
        token_provider: TokenProvider,
        http_client: httpx.AsyncClient | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Initialise the client with configuration and a token capability."""
        self._config = config
        self._token_provider = token_provider
        self._clock = clock
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Accept": "application/vnd.github+json",
                "User-Agent": config.user_agent,
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        self._last_rate_limit_reset: dt.datetime | None = None

    @property
    def config(self) -> GitHubClientConfig:
        """Read-only access to the client configuration."""
        return self._config

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    # Rate-limit bookkeeping

    def rate_limit_reset(self, now: dt.datetime) -> dt.datetime | None:
        """Return the last observed reset while it is still in the future."""
        reset = self._last_rate_limit_reset
        if reset is None or reset <= now:
            return None
        return reset

    def rate_limit_message(self, now: dt.datetime) -> str | None:
        """Return a display message while a rate-limit reset is pending."""
        reset = self.rate_limit_reset(now)
        if reset is None:
            return None
        return f"GitHub rate limit hit; resets {format_relative(reset, now=now)}."

    # Transport

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str | int] | None = None,
        json: dict[str, object] | None = None,
    ) -> httpx.Response:
        token = await self._token_provider.access_token()
        if not token:
            raise GitHubAPIError.unauthenticated()
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise GitHubAPIError.timeout() from exc
        except httpx.RequestError as exc:
            raise GitHubAPIError.network_error(str(exc)) from exc
        self._check_response(response)
        return response

    def _check_response(self, response: httpx.Response) -> None:
        """Map a response status onto the error taxonomy.

        Raises
        ------
        GitHubAPIError
            For 202 stats placeholders and every status of 400 or above.

        """
        status = response.status_code
        now = self._clock()
        if status == _HTTP_ACCEPTED:
            retry_at = _retry_after(response, now, _DEFAULT_STATS_WAIT)
            raise GitHubAPIError.service_unavailable(retry_at, status_code=status)
        if status == _HTTP_RATE_LIMITED or (
            status == _HTTP_FORBIDDEN and _quota_exhausted(response)
        ):
            reset = _rate_limit_reset(response, now)
            self._last_rate_limit_reset = reset
            raise GitHubAPIError.rate_limited(reset, status_code=status)
        if status in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
            raise GitHubAPIError.unauthorized(status)
        if status in {_HTTP_NOT_FOUND, _HTTP_GONE}:
            raise GitHubAPIError.not_found(status, response.request.url.path)
        if status == _HTTP_SERVICE_UNAVAILABLE:
            retry_at = _retry_after(response, now, _DEFAULT_RATE_LIMIT_WAIT)
            raise GitHubAPIError.service_unavailable(retry_at, status_code=status)
        if status >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(status)

    async def _get(
        self, path: str, params: dict[str, str | int] | None = None
    ) -> httpx.Response:
        return await self._request("GET", f"{self._config.api_url}{path}", params=params)

    async def _graphql(
        self, query: str, variables: dict[str, object]
    ) -> dict[str, typ.Any]:
        response = await self._request(
            "POST",
            self._config.graphql_url,
            json={"query": query, "variables": variables},
        )
        envelope = _decode(response.content, GraphQLEnvelope)
        if envelope.errors:
            if any(
                isinstance(error, dict) and error.get("type") == "NOT_FOUND"
                for error in envelope.errors
            ):
                raise GitHubAPIError.not_found(_HTTP_NOT_FOUND, "graphql")
            raise GitHubAPIError.graphql_errors(envelope.errors)
        if envelope.data is None:
            raise GitHubResponseShapeError.missing("data")
        return envelope.data

    # Account and repository lists

    async def current_user(self) -> UserIdentity:
        """Return the account that owns the access token."""
        response = await self._get("/user")
        account = _decode(response.content, AccountPayload)
        return UserIdentity(username=account.login, host=self._config.web_url)

    async def repository_list(self, limit: int) -> list[Repository]:
        """Return up to ``limit`` shallow repositories, most recently pushed first."""
        per_page = _page_size(limit)
        repositories: list[Repository] = []
        page = 1
        while len(repositories) < limit:
            response = await self._get(
                "/user/repos",
                {
                    "sort": "pushed",
                    "per_page": per_page,
                    "page": page,
                    "affiliation": "owner,collaborator,organization_member",
                },
            )
            payloads = _decode(response.content, list[RepositoryPayload])
            repositories.extend(_repository_from_payload(p) for p in payloads)
            if len(payloads) < per_page:
                break
            page += 1
        return repositories[:limit]

    async def recent_repositories(self, limit: int) -> list[Repository]:
        """Return repositories the user pushed to most recently."""
        response = await self._get(
            "/user/repos", {"sort": "pushed", "per_page": _page_size(limit)}
        )
        payloads = _decode(response.content, list[RepositoryPayload])
        return [_repository_from_payload(p) for p in payloads][:limit]

    async def search_repositories(self, query: str) -> list[Repository]:
        """Search repositories by free text; blank queries return nothing."""
        if not query.strip():
            return []
        response = await self._get(
            "/search/repositories",
            {"q": query.strip(), "per_page": _SEARCH_PAGE_SIZE},
        )
        result = _decode(response.content, RepositorySearchPayload)
        return [_repository_from_payload(p) for p in result.items]

    async def full_repository(self, owner: str, name: str) -> Repository:
        """Return the full record for one repository.

        The repository object itself is required. The open pull request count
        and recent events are auxiliary: their failures are recorded on the
        returned record's ``error`` and ``rate_limited_until`` fields.
        """
        response = await self._get(f"/repos/{owner}/{name}")
        base = _repository_from_payload(_decode(response.content, RepositoryPayload))
        pulls, events = await asyncio.gather(
            self._open_pull_count(base.owner, base.name),
            self._repository_events(base.owner, base.name),
            return_exceptions=True,
        )
        error: str | None = None
        rate_limited_until: dt.datetime | None = None
        for outcome in (pulls, events):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                error = error or user_facing_message(outcome, now=self._clock())
                if error_kind(outcome) is ErrorKind.RATE_LIMITED:
                    rate_limited_until = retry_at_of(outcome)

        open_pulls = pulls if isinstance(pulls, int) else 0
        activity = tuple(events) if isinstance(events, list) else ()
        return dataclasses.replace(
            base,
            open_pulls=open_pulls,
            open_issues=max(0, base.open_issues - open_pulls),
            activity_events=activity,
            latest_activity=activity[0] if activity else None,
            error=error,
            rate_limited_until=rate_limited_until,
            detailed=True,
        )

    async def _open_pull_count(self, owner: str, name: str) -> int:
        response = await self._get(
            "/search/issues",
            {"q": f"repo:{repo_slug(owner, name)} type:pr state:open", "per_page": 1},
        )
        return _decode(response.content, CountSearchPayload).total_count

    async def _repository_events(self, owner: str, name: str) -> list[ActivityEvent]:
        response = await self._get(
            f"/repos/{owner}/{name}/events",
            {"per_page": _REPOSITORY_EVENT_LIMIT},
        )
        payloads = _decode(response.content, list[EventPayload])
        return [_activity_from_event(e, self._config.web_url) for e in payloads]

    # Repository detail categories

    async def recent_pull_requests(
        self, owner: str, name: str, limit: int
    ) -> list[PullRequestSummary]:
        """Return recently updated open pull requests."""
        response = await self._get(
            f"/repos/{owner}/{name}/pulls",
            {
                "state": "open",
                "sort": "updated",
                "direction": "desc",
                "per_page": _page_size(limit),
            },
        )
        return [
            PullRequestSummary(
                number=p.number,
                title=p.title,
                url=p.html_url,
                author=p.user.login if p.user else None,
                updated_at=p.updated_at,
                is_draft=p.draft,
            )
            for p in _decode(response.content, list[PullRequestPayload])
        ][:limit]

    async def recent_issues(
        self, owner: str, name: str, limit: int
    ) -> list[IssueSummary]:
        """Return recently updated open issues, excluding pull requests."""
        response = await self._get(
            f"/repos/{owner}/{name}/issues",
            {
                "state": "open",
                "sort": "updated",
                "direction": "desc",
                "per_page": _page_size(limit),
            },
        )
        return [
            IssueSummary(
                number=i.number,
                title=i.title,
                url=i.html_url,
                author=i.user.login if i.user else None,
                updated_at=i.updated_at,
                labels=tuple(label.name for label in i.labels),
            )
            for i in _decode(response.content, list[IssuePayload])
            if i.pull_request is None
        ][:limit]

    async def recent_releases(
        self, owner: str, name: str, limit: int
    ) -> list[ReleaseSummary]:
        """Return recent releases."""
        response = await self._get(
            f"/repos/{owner}/{name}/releases", {"per_page": _page_size(limit)}
        )
        return [
            ReleaseSummary(
                name=r.name or r.tag_name,
                tag=r.tag_name,
                url=r.html_url,
                published_at=r.published_at,
                is_prerelease=r.prerelease,
            )
            for r in _decode(response.content, list[ReleasePayload])
        ][:limit]

    async def recent_workflow_runs(
        self, owner: str, name: str, limit: int
    ) -> list[WorkflowRunSummary]:
        """Return recent GitHub Actions runs."""
        response = await self._get(
            f"/repos/{owner}/{name}/actions/runs", {"per_page": _page_size(limit)}
        )
        runs = _decode(response.content, WorkflowRunsPayload).workflow_runs
        return [
            WorkflowRunSummary(
                name=run.name or "workflow",
                url=run.html_url,
                status=run.status,
                conclusion=run.conclusion,
                branch=run.head_branch,
                updated_at=run.updated_at,
            )
            for run in runs
        ][:limit]

    async def recent_commits(self, owner: str, name: str, limit: int) -> CommitList:
        """Return recent commits and the branch's total commit count.

        The total comes from the ``last`` pagination link of a one-item page.
        """
        path = f"/repos/{owner}/{name}/commits"
        count_response = await self._get(path, {"per_page": 1})
        response = await self._get(path, {"per_page": _page_size(limit)})
        items = tuple(
            CommitSummary(
                sha=c.sha,
                message=c.commit.message,
                author=(
                    c.author.login
                    if c.author
                    else (c.commit.author.name if c.commit.author else None)
                ),
                occurred_at=c.commit.author.date if c.commit.author else None,
                url=c.html_url,
                repository=repo_slug(owner, name),
            )
            for c in _decode(response.content, list[CommitPayload])
        )[:limit]
        total = _last_page(count_response)
        if total is None:
            total = len(_decode(count_response.content, list[CommitPayload]))
        return CommitList(items=items, total_count=total)

    async def recent_discussions(
        self, owner: str, name: str, limit: int
    ) -> list[DiscussionSummary]:
        """Return recent discussions.

        Raises
        ------
        GitHubAPIError
            With kind ``NOT_FOUND`` when discussions are disabled.

        """
        data = await self._graphql(
            _DISCUSSIONS_QUERY,
            {"owner": owner, "name": name, "first": _page_size(limit)},
        )
        raw = data.get("repository")
        if raw is None:
            raise GitHubAPIError.not_found(_HTTP_NOT_FOUND, repo_slug(owner, name))
        node = _convert(raw, DiscussionRepositoryNode)
        if not node.has_discussions_enabled or node.discussions is None:
            raise GitHubAPIError.not_found(_HTTP_NOT_FOUND, "discussions")
        return [
            DiscussionSummary(
                title=d.title,
                url=d.url,
                author=d.author.login if d.author else None,
                updated_at=d.updated_at,
                comment_count=d.comments.total_count if d.comments else 0,
                category=d.category.name if d.category else None,
            )
            for d in node.discussions.nodes
        ][:limit]

    async def recent_tags(self, owner: str, name: str, limit: int) -> list[TagSummary]:
        """Return recent tags."""
        response = await self._get(
            f"/repos/{owner}/{name}/tags", {"per_page": _page_size(limit)}
        )
        return [
            TagSummary(name=t.name, sha=t.commit.sha)
            for t in _decode(response.content, list[TagPayload])
        ][:limit]

    async def recent_branches(
        self, owner: str, name: str, limit: int
    ) -> list[BranchSummary]:
        """Return branches."""
        response = await self._get(
            f"/repos/{owner}/{name}/branches", {"per_page": _page_size(limit)}
        )
        return [
            BranchSummary(name=b.name, sha=b.commit.sha, is_protected=b.protected)
            for b in _decode(response.content, list[BranchPayload])
        ][:limit]

    async def top_contributors(
        self, owner: str, name: str, limit: int
    ) -> list[ContributorSummary]:
        """Return contributors ranked by commit count.

        Empty repositories answer 204 and yield an empty list.
        """
        response = await self._get(
            f"/repos/{owner}/{name}/contributors", {"per_page": _page_size(limit)}
        )
        if response.status_code == _HTTP_NO_CONTENT or not response.content:
            return []
        return [
            ContributorSummary(
                login=c.login, contributions=c.contributions, url=c.html_url
            )
            for c in _decode(response.content, list[ContributorPayload])
        ][:limit]

    # User feeds

    async def user_contribution_heatmap(self, login: str) -> list[HeatmapCell]:
        """Return every day of the user's contribution calendar."""
        data = await self._graphql(_CONTRIBUTIONS_QUERY, {"login": login})
        raw = data.get("user")
        if raw is None:
            raise GitHubAPIError.not_found(_HTTP_NOT_FOUND, login)
        user = _convert(raw, ContributionUserNode)
        calendar = user.contributions_collection.contribution_calendar
        return [
            HeatmapCell(day=day.date, count=day.contribution_count)
            for week in calendar.weeks
            for day in week.contribution_days
        ]

    async def _user_feed(
        self, username: str, scope: ActivityScope
    ) -> list[EventPayload]:
        suffix = "events" if scope is ActivityScope.MY_ACTIVITY else "received_events"
        response = await self._get(
            f"/users/{username}/{suffix}", {"per_page": _MAX_PAGE_SIZE}
        )
        return _decode(response.content, list[EventPayload])

    async def user_activity_events(
        self, username: str, scope: ActivityScope, limit: int
    ) -> list[ActivityEvent]:
        """Return up to ``limit`` events from the user's feed."""
        events = await self._user_feed(username, scope)
        return [_activity_from_event(e, self._config.web_url) for e in events][:limit]

    async def user_commit_events(
        self, username: str, scope: ActivityScope, limit: int
    ) -> list[CommitSummary]:
        """Return up to ``limit`` commits pushed in the user's feed."""
        events = await self._user_feed(username, scope)
        commits = [
            commit
            for event in events
            for commit in _commits_from_push(event, self._config.web_url)
        ]
        return commits[:limit]


__all__ = [
    "GitHubClientConfig",
    "GitHubRestClient",
    "RepositoryAPI",
    "TokenProvider",
]
