"""Immutable description of which repositories to show and in what order."""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import typing as typ

from perch.common.slug import canonical_full_name

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from perch.settings import UserSettings

DEFAULT_AGE_CUTOFF = dt.timedelta(days=365)


class RepositoryScope(enum.StrEnum):
    """Which partition of repositories a query selects."""

    ALL = "all"
    PINNED = "pinned"
    HIDDEN = "hidden"


class OnlyWith(enum.StrEnum):
    """Require open work items on unpinned repositories."""

    NONE = "none"
    WORK = "work"
    ISSUES = "issues"
    PULL_REQUESTS = "prs"


class SortKey(enum.StrEnum):
    """Primary ordering for unpinned repositories."""

    ACTIVITY = "activity"
    ISSUES = "issues"
    PULL_REQUESTS = "prs"
    STARS = "stars"
    NAME = "name"


def _normalize_pins(names: cabc.Iterable[str]) -> tuple[str, ...]:
    """Return trimmed, lower-cased, de-duplicated full names in input order."""
    seen: dict[str, None] = {}
    for raw in names:
        try:
            key = canonical_full_name(raw)
        except ValueError:
            continue
        seen.setdefault(key, None)
    return tuple(seen)


def normalize_owner_filter(owners: cabc.Iterable[str]) -> frozenset[str]:
    """Return lower-cased, trimmed owner logins with blanks dropped.

    Examples
    --------
    >>> sorted(normalize_owner_filter([" Octo ", "octo", "", "Reef"]))
    ['octo', 'reef']

    """
    return frozenset(owner.strip().lower() for owner in owners if owner.strip())


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryQuery:
    """Filter, sort and limit parameters for :func:`perch.sync.pipeline.apply`.

    ``pinned``, ``hidden`` and ``owner_filter`` are normalised on construction
    so comparisons are case-insensitive and whitespace-trimmed. A full name
    that is both pinned and hidden is dropped from ``pinned``.

    Attributes
    ----------
    scope
        ``all`` (visible repositories), ``pinned`` (pinned only) or
        ``hidden`` (hidden only).
    only_with
        Open-work requirement applied to unpinned repositories.
    include_forks, include_archived
        Whether unpinned forks and archived repositories survive.
    sort_key
        Primary ordering; ties fall through activity, issues, pull requests,
        stars and finally full name.
    limit
        Maximum result length, or ``None`` for unbounded.
    age_cutoff
        Drop unpinned repositories whose activity predates this instant.
    pinned
        Ordered pinned full names.
    hidden
        Hidden full names; hidden always wins over pinned.
    pin_priority
        When true, pinned repositories lead the result and are exempt from the
        age cutoff and the limit.
    owner_filter
        Restrict unpinned repositories to these owner logins; empty means all.

    """

    scope: RepositoryScope = RepositoryScope.ALL
    only_with: OnlyWith = OnlyWith.NONE
    include_forks: bool = False
    include_archived: bool = False
    sort_key: SortKey = SortKey.ACTIVITY
    limit: int | None = None
    age_cutoff: dt.datetime | None = None
    pinned: tuple[str, ...] = ()
    hidden: frozenset[str] = frozenset()
    pin_priority: bool = True
    owner_filter: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        """Validate the limit and normalise name collections."""
        if self.limit is not None and self.limit < 1:
            msg = f"limit must be positive or None, got: {self.limit}"
            raise ValueError(msg)
        hidden = frozenset(_normalize_pins(self.hidden))
        pinned = tuple(name for name in _normalize_pins(self.pinned) if name not in hidden)
        object.__setattr__(self, "hidden", hidden)
        object.__setattr__(self, "pinned", pinned)
        object.__setattr__(
            self, "owner_filter", normalize_owner_filter(self.owner_filter)
        )

    @classmethod
    def from_settings(
        cls,
        settings: UserSettings,
        *,
        now: dt.datetime,
        limit: int | None = None,
    ) -> RepositoryQuery:
        """Build the dashboard query for the current settings and clock.

        The default age cutoff (one year before ``now``) applies only to the
        ``all`` scope. ``limit`` defaults to the settings' display limit.
        """
        age_cutoff = (
            now - DEFAULT_AGE_CUTOFF if settings.scope is RepositoryScope.ALL else None
        )
        return cls(
            scope=settings.scope,
            only_with=settings.only_with,
            include_forks=settings.show_forks,
            include_archived=settings.show_archived,
            sort_key=settings.sort_key,
            limit=limit if limit is not None else settings.repo_display_limit,
            age_cutoff=age_cutoff,
            pinned=settings.pinned,
            hidden=frozenset(settings.hidden),
            pin_priority=settings.pin_priority,
            owner_filter=frozenset(settings.owner_filter),
        )
