"""Merge activity feeds into one ordered, duplicate-free list."""

from __future__ import annotations

import typing as typ

from perch.github.models import ActivityScope

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from perch.github.models import ActivityEvent, Repository

DEFAULT_ACTIVITY_LIMIT = 20


def repository_events(
    repositories: cabc.Iterable[Repository],
) -> list[ActivityEvent]:
    """Collect events embedded in hydrated repositories.

    Repositories without an embedded event list contribute their latest
    activity, when known.
    """
    events: list[ActivityEvent] = []
    for repo in repositories:
        if repo.activity_events:
            events.extend(repo.activity_events)
        elif repo.latest_activity is not None:
            events.append(repo.latest_activity)
    return events


def merge_activity(
    user_events: cabc.Iterable[ActivityEvent],
    repo_events: cabc.Iterable[ActivityEvent],
    *,
    username: str | None,
    scope: ActivityScope = ActivityScope.ALL,
    limit: int = DEFAULT_ACTIVITY_LIMIT,
) -> list[ActivityEvent]:
    """Merge two event sources newest first, collapsing duplicates.

    Parameters
    ----------
    user_events
        Events from the user's activity feed.
    repo_events
        Events embedded in repository records.
    username
        Signed-in login used by the ``my_activity`` scope.
    scope
        ``my_activity`` keeps only events whose actor matches ``username``
        case-insensitively.
    limit
        Maximum number of events returned.

    Returns
    -------
    list[ActivityEvent]
        Events in non-increasing timestamp order, unique by
        ``(url, occurred_at, actor)``, at most ``limit`` long. Events with
        equal timestamps keep their input order, user events first.

    """
    if limit <= 0:
        return []
    combined = [*user_events, *repo_events]
    if scope is ActivityScope.MY_ACTIVITY:
        login = (username or "").lower()
        combined = [event for event in combined if event.actor.lower() == login]

    merged: list[ActivityEvent] = []
    seen: set[tuple[object, ...]] = set()
    for event in sorted(combined, key=lambda e: e.occurred_at, reverse=True):
        key = event.dedup_key
        if key in seen:
            continue
        seen.add(key)
        merged.append(event)
        if len(merged) == limit:
            break
    return merged
