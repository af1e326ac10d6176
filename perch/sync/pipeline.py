"""Pure filter, sort and limit transform over repository lists."""

from __future__ import annotations

import math
import typing as typ

from .query import OnlyWith, RepositoryScope, SortKey

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from perch.github.models import Repository

    from .query import RepositoryQuery

_TIE_BREAK_CHAIN = (
    SortKey.ACTIVITY,
    SortKey.ISSUES,
    SortKey.PULL_REQUESTS,
    SortKey.STARS,
    SortKey.NAME,
)


def _sort_component(repo: Repository, key: SortKey) -> float | int | str:
    match key:
        case SortKey.ACTIVITY:
            moment = repo.activity_date
            return -moment.timestamp() if moment is not None else math.inf
        case SortKey.ISSUES:
            return -repo.open_issues
        case SortKey.PULL_REQUESTS:
            return -repo.open_pulls
        case SortKey.STARS:
            return -repo.stars
        case SortKey.NAME:
            return repo.key


def _sort_tuple(repo: Repository, sort_key: SortKey) -> tuple[float | int | str, ...]:
    order = (sort_key, *(key for key in _TIE_BREAK_CHAIN if key is not sort_key))
    return tuple(_sort_component(repo, key) for key in order)


def sort_repositories(
    repositories: cabc.Iterable[Repository], sort_key: SortKey
) -> list[Repository]:
    """Sort by ``sort_key`` with the deterministic tie-break chain.

    Activity, issue, pull request and star orderings are descending; name
    ordering is ascending and case-insensitive. Undated repositories sort last
    under activity ordering.
    """
    return sorted(repositories, key=lambda repo: _sort_tuple(repo, sort_key))


def _has_required_work(repo: Repository, only_with: OnlyWith) -> bool:
    match only_with:
        case OnlyWith.NONE:
            return True
        case OnlyWith.WORK:
            return repo.open_issues > 0 or repo.open_pulls > 0
        case OnlyWith.ISSUES:
            return repo.open_issues > 0
        case OnlyWith.PULL_REQUESTS:
            return repo.open_pulls > 0


def _passes_filters(repo: Repository, query: RepositoryQuery) -> bool:
    if repo.is_fork and not query.include_forks:
        return False
    if repo.is_archived and not query.include_archived:
        return False
    if query.owner_filter and repo.owner.lower() not in query.owner_filter:
        return False
    return _has_required_work(repo, query.only_with)


def _within_cutoff(repo: Repository, cutoff: dt.datetime | None) -> bool:
    if cutoff is None:
        return True
    moment = repo.activity_date
    return moment is not None and moment >= cutoff


def _unique(repositories: cabc.Iterable[Repository]) -> list[Repository]:
    seen: set[str] = set()
    unique: list[Repository] = []
    for repo in repositories:
        if repo.key in seen:
            continue
        seen.add(repo.key)
        unique.append(repo)
    return unique


def _truncate(repositories: list[Repository], limit: int | None) -> list[Repository]:
    return repositories if limit is None else repositories[:limit]


def apply(
    repositories: cabc.Iterable[Repository], query: RepositoryQuery
) -> list[Repository]:
    """Apply ``query`` to ``repositories``.

    Pure and deterministic. Hidden repositories never appear outside the
    ``hidden`` scope. Pinned repositories bypass the fork, archived, owner and
    open-work filters; under ``pin_priority`` they also bypass the age cutoff
    and the limit and lead the result in pinned order.

    Parameters
    ----------
    repositories
        Candidate repositories; duplicates by full name keep the first.
    query
        Filter, sort and limit parameters.

    Returns
    -------
    list[Repository]
        The visible repositories in display order.

    """
    candidates = _unique(repositories)

    if query.scope is RepositoryScope.HIDDEN:
        hidden = [
            repo
            for repo in candidates
            if repo.key in query.hidden and _passes_filters(repo, query)
        ]
        return _truncate(sort_repositories(hidden, query.sort_key), query.limit)

    visible = [repo for repo in candidates if repo.key not in query.hidden]
    pin_rank = {name: index for index, name in enumerate(query.pinned)}
    pinned = sorted(
        (repo for repo in visible if repo.key in pin_rank),
        key=lambda repo: pin_rank[repo.key],
    )
    unpinned: list[Repository] = []
    if query.scope is RepositoryScope.ALL:
        unpinned = [
            repo
            for repo in visible
            if repo.key not in pin_rank
            and _passes_filters(repo, query)
            and _within_cutoff(repo, query.age_cutoff)
        ]

    if query.pin_priority:
        remaining = None if query.limit is None else max(0, query.limit - len(pinned))
        return pinned + _truncate(sort_repositories(unpinned, query.sort_key), remaining)

    pinned = [repo for repo in pinned if _within_cutoff(repo, query.age_cutoff)]
    return _truncate(sort_repositories(pinned + unpinned, query.sort_key), query.limit)
