"""Domain values exchanged between the GitHub client and the sync engine.

All values are frozen so snapshots can be shared with consumers without
copying. Wire payloads are decoded separately in :mod:`perch.github.wire` and
converted to these types at the client boundary.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from perch.common.slug import normalize_full_name, repo_slug

if typ.TYPE_CHECKING:
    import datetime as dt


class ActivityScope(enum.StrEnum):
    """Whose events feed the global activity list."""

    ALL = "all"
    MY_ACTIVITY = "my_activity"


@dataclasses.dataclass(frozen=True, slots=True)
class UserIdentity:
    """Signed-in GitHub account."""

    username: str
    host: str = "https://github.com"


@dataclasses.dataclass(frozen=True, slots=True)
class ActivityEvent:
    """Single entry in an activity feed."""

    title: str
    actor: str
    occurred_at: dt.datetime
    url: str
    kind: str = "event"
    repository: str | None = None

    @property
    def dedup_key(self) -> tuple[str, dt.datetime, str]:
        """Return the identity used to collapse duplicates across sources."""
        return (self.url, self.occurred_at, self.actor)


@dataclasses.dataclass(frozen=True, slots=True)
class CommitSummary:
    """Commit shown in the global commit list or a repository detail page."""

    sha: str
    message: str
    author: str | None
    occurred_at: dt.datetime | None
    url: str
    repository: str | None = None

    @property
    def title(self) -> str:
        """Return the first line of the commit message."""
        return self.message.splitlines()[0] if self.message else ""


@dataclasses.dataclass(frozen=True, slots=True)
class CommitList:
    """Recent commits plus the total count when GitHub reports one."""

    items: tuple[CommitSummary, ...] = ()
    total_count: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class Repository:
    """Repository as shown in the dashboard.

    A list fetch produces shallow records (``detailed`` is False); a detail
    fetch produces full records with open pull request counts and recent
    activity. ``error`` and ``rate_limited_until`` note partial degradation of
    the detail fetch without discarding the record.
    """

    owner: str
    name: str
    stars: int = 0
    forks: int = 0
    open_issues: int = 0
    open_pulls: int = 0
    pushed_at: dt.datetime | None = None
    is_fork: bool = False
    is_archived: bool = False
    activity_events: tuple[ActivityEvent, ...] = ()
    latest_activity: ActivityEvent | None = None
    error: str | None = None
    rate_limited_until: dt.datetime | None = None
    sort_order: int | None = None
    detailed: bool = False

    @property
    def full_name(self) -> str:
        """Return ``owner/name``."""
        return repo_slug(self.owner, self.name)

    @property
    def key(self) -> str:
        """Return the case-insensitive identity within a snapshot."""
        return normalize_full_name(self.full_name)

    @property
    def activity_date(self) -> dt.datetime | None:
        """Return the most recent known activity timestamp."""
        if self.latest_activity is not None:
            return self.latest_activity.occurred_at
        return self.pushed_at

    def with_sort_order(self, sort_order: int | None) -> Repository:
        """Return a copy stamped with a pinned position."""
        return dataclasses.replace(self, sort_order=sort_order)

    def reconcile(self, other: Repository) -> Repository:
        """Pick the better of two records for the same repository.

        A full record always wins over a shallow one; otherwise ``self`` is
        kept.
        """
        if other.detailed and not self.detailed:
            return other
        return self


@dataclasses.dataclass(frozen=True, slots=True)
class HeatmapCell:
    """Contribution count for one calendar day."""

    day: dt.date
    count: int


@dataclasses.dataclass(frozen=True, slots=True)
class HeatmapRange:
    """Inclusive, week-aligned day range displayed by the heatmap."""

    start: dt.date
    end: dt.date

    def __contains__(self, day: object) -> bool:
        """Return True when ``day`` falls inside the range."""
        return self.start <= typ.cast("dt.date", day) <= self.end


@dataclasses.dataclass(frozen=True, slots=True)
class PullRequestSummary:
    """Open pull request listed on a repository detail page."""

    number: int
    title: str
    url: str
    author: str | None
    updated_at: dt.datetime
    is_draft: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class IssueSummary:
    """Open issue listed on a repository detail page."""

    number: int
    title: str
    url: str
    author: str | None
    updated_at: dt.datetime
    labels: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseSummary:
    """Published release."""

    name: str
    tag: str
    url: str
    published_at: dt.datetime | None
    is_prerelease: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class WorkflowRunSummary:
    """GitHub Actions workflow run."""

    name: str
    url: str
    status: str | None
    conclusion: str | None
    branch: str | None
    updated_at: dt.datetime


@dataclasses.dataclass(frozen=True, slots=True)
class DiscussionSummary:
    """Repository discussion thread."""

    title: str
    url: str
    author: str | None
    updated_at: dt.datetime
    comment_count: int = 0
    category: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TagSummary:
    """Git tag."""

    name: str
    sha: str


@dataclasses.dataclass(frozen=True, slots=True)
class BranchSummary:
    """Git branch."""

    name: str
    sha: str
    is_protected: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class ContributorSummary:
    """Contributor ranked by commit count."""

    login: str
    contributions: int
    url: str
