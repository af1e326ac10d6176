"""msgspec structures mirroring the GitHub payload fields Perch reads.

Only the fields the dashboard needs are declared; msgspec ignores the rest.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec


class AccountPayload(msgspec.Struct, kw_only=True):
    """User or organisation reference embedded in other payloads."""

    login: str
    html_url: str | None = None


class RepositoryPayload(msgspec.Struct, kw_only=True):
    """REST repository object."""

    name: str
    owner: AccountPayload
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    pushed_at: dt.datetime | None = None
    fork: bool = False
    archived: bool = False


class RepositorySearchPayload(msgspec.Struct, kw_only=True):
    """``/search/repositories`` response."""

    items: list[RepositoryPayload] = msgspec.field(default_factory=list)


class CountSearchPayload(msgspec.Struct, kw_only=True):
    """``/search/issues`` response used only for its total count."""

    total_count: int = 0


class LabelPayload(msgspec.Struct, kw_only=True):
    """Issue label."""

    name: str


class PullRequestPayload(msgspec.Struct, kw_only=True):
    """REST pull request object."""

    number: int
    title: str
    html_url: str
    updated_at: dt.datetime
    user: AccountPayload | None = None
    draft: bool = False


class IssuePayload(msgspec.Struct, kw_only=True):
    """REST issue object; pull requests carry a ``pull_request`` member."""

    number: int
    title: str
    html_url: str
    updated_at: dt.datetime
    user: AccountPayload | None = None
    labels: list[LabelPayload] = msgspec.field(default_factory=list)
    pull_request: dict[str, typ.Any] | None = None


class ReleasePayload(msgspec.Struct, kw_only=True):
    """REST release object."""

    tag_name: str
    html_url: str
    name: str | None = None
    published_at: dt.datetime | None = None
    prerelease: bool = False


class WorkflowRunPayload(msgspec.Struct, kw_only=True):
    """REST workflow run object."""

    html_url: str
    updated_at: dt.datetime
    name: str | None = None
    status: str | None = None
    conclusion: str | None = None
    head_branch: str | None = None


class WorkflowRunsPayload(msgspec.Struct, kw_only=True):
    """``/actions/runs`` response."""

    workflow_runs: list[WorkflowRunPayload] = msgspec.field(default_factory=list)


class CommitAuthorPayload(msgspec.Struct, kw_only=True):
    """Git author signature."""

    name: str | None = None
    date: dt.datetime | None = None


class CommitDetailPayload(msgspec.Struct, kw_only=True):
    """Git commit body nested in the REST commit object."""

    message: str = ""
    author: CommitAuthorPayload | None = None


class CommitPayload(msgspec.Struct, kw_only=True):
    """REST commit object."""

    sha: str
    html_url: str
    commit: CommitDetailPayload
    author: AccountPayload | None = None


class CommitRefPayload(msgspec.Struct, kw_only=True):
    """Commit reference embedded in tags and branches."""

    sha: str


class TagPayload(msgspec.Struct, kw_only=True):
    """REST tag object."""

    name: str
    commit: CommitRefPayload


class BranchPayload(msgspec.Struct, kw_only=True):
    """REST branch object."""

    name: str
    commit: CommitRefPayload
    protected: bool = False


class ContributorPayload(msgspec.Struct, kw_only=True):
    """REST contributor object."""

    login: str
    contributions: int = 0
    html_url: str = ""


class EventRepoPayload(msgspec.Struct, kw_only=True):
    """Repository reference in an event."""

    name: str


class EventPayload(msgspec.Struct, kw_only=True):
    """REST event object from the user and received event feeds."""

    type: str
    actor: AccountPayload
    repo: EventRepoPayload
    created_at: dt.datetime
    payload: dict[str, typ.Any] = msgspec.field(default_factory=dict)


class GraphQLEnvelope(msgspec.Struct, kw_only=True):
    """Top-level GraphQL response."""

    data: dict[str, typ.Any] | None = None
    errors: list[typ.Any] | None = None


class DiscussionAuthorNode(msgspec.Struct, kw_only=True):
    """Discussion author."""

    login: str


class DiscussionCommentsNode(msgspec.Struct, kw_only=True, rename="camel"):
    """Discussion comment connection reduced to its count."""

    total_count: int = 0


class DiscussionCategoryNode(msgspec.Struct, kw_only=True):
    """Discussion category."""

    name: str


class DiscussionNode(msgspec.Struct, kw_only=True, rename="camel"):
    """GraphQL discussion node."""

    title: str
    url: str
    updated_at: dt.datetime
    author: DiscussionAuthorNode | None = None
    comments: DiscussionCommentsNode | None = None
    category: DiscussionCategoryNode | None = None


class DiscussionConnection(msgspec.Struct, kw_only=True):
    """GraphQL discussion connection."""

    nodes: list[DiscussionNode] = msgspec.field(default_factory=list)


class DiscussionRepositoryNode(msgspec.Struct, kw_only=True, rename="camel"):
    """Repository node carrying discussion state."""

    has_discussions_enabled: bool = True
    discussions: DiscussionConnection | None = None


class ContributionDayNode(msgspec.Struct, kw_only=True, rename="camel"):
    """Single contribution calendar day."""

    date: dt.date
    contribution_count: int = 0


class ContributionWeekNode(msgspec.Struct, kw_only=True, rename="camel"):
    """Contribution calendar week."""

    contribution_days: list[ContributionDayNode] = msgspec.field(
        default_factory=list
    )


class ContributionCalendarNode(msgspec.Struct, kw_only=True):
    """Contribution calendar."""

    weeks: list[ContributionWeekNode] = msgspec.field(default_factory=list)


class ContributionsCollectionNode(msgspec.Struct, kw_only=True, rename="camel"):
    """Contributions collection wrapper."""

    contribution_calendar: ContributionCalendarNode


class ContributionUserNode(msgspec.Struct, kw_only=True, rename="camel"):
    """User node carrying the contribution calendar."""

    contributions_collection: ContributionsCollectionNode
