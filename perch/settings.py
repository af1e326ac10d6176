"""User preferences read by every refresh cycle.

Settings values are immutable; mutations return a new :class:`UserSettings`
that the caller saves back to a :class:`SettingsStore`. Pin and hide lists
compare full names case-insensitively.
"""

from __future__ import annotations

import dataclasses
import enum
import threading
import typing as typ

from perch.common.slug import canonical_full_name, normalize_full_name
from perch.github.host import GITHUB_DOT_COM
from perch.github.models import ActivityScope
from perch.sync.heatmap import HeatmapSpan
from perch.sync.query import OnlyWith, RepositoryScope, SortKey

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class RefreshInterval(enum.IntEnum):
    """Selectable dashboard refresh intervals, in seconds."""

    ONE_MINUTE = 60
    TWO_MINUTES = 120
    FIVE_MINUTES = 300
    FIFTEEN_MINUTES = 900


DEFAULT_DISPLAY_LIMIT = 5


def _stored_key(name: str) -> str:
    """Return the comparison key of a stored name, tolerating bad entries."""
    try:
        return canonical_full_name(name)
    except ValueError:
        return normalize_full_name(name)


def _without(names: cabc.Iterable[str], full_name: str) -> tuple[str, ...]:
    key = _stored_key(full_name)
    return tuple(name for name in names if _stored_key(name) != key)


def _with(names: tuple[str, ...], full_name: str) -> tuple[str, ...]:
    key = canonical_full_name(full_name)
    if any(_stored_key(name) == key for name in names):
        return names
    return (*names, full_name.strip())


@dataclasses.dataclass(frozen=True, slots=True)
class UserSettings:
    """Dashboard preferences.

    Attributes
    ----------
    show_contribution_header
        Fetch and show the contribution heatmap.
    repo_display_limit
        Maximum repositories shown on the dashboard.
    show_forks, show_archived
        Include unpinned forks and archived repositories.
    refresh_interval
        Seconds between scheduled refreshes.
    heatmap_span
        Months of contributions covered by the heatmap.
    github_host
        GitHub or Enterprise origin used for sign-in.
    pinned
        Full names shown first, in this order.
    hidden
        Full names never shown on the dashboard.
    activity_scope
        Whether the activity feed covers everything or only the user.
    sort_key, only_with, scope, owner_filter, pin_priority
        Repository query parameters; see
        :class:`perch.sync.query.RepositoryQuery`.

    """

    show_contribution_header: bool = True
    repo_display_limit: int = DEFAULT_DISPLAY_LIMIT
    show_forks: bool = False
    show_archived: bool = False
    refresh_interval: int = RefreshInterval.FIVE_MINUTES
    heatmap_span: HeatmapSpan = HeatmapSpan.THREE_MONTHS
    github_host: str = GITHUB_DOT_COM
    pinned: tuple[str, ...] = ()
    hidden: tuple[str, ...] = ()
    activity_scope: ActivityScope = ActivityScope.ALL
    sort_key: SortKey = SortKey.ACTIVITY
    only_with: OnlyWith = OnlyWith.NONE
    scope: RepositoryScope = RepositoryScope.ALL
    owner_filter: tuple[str, ...] = ()
    pin_priority: bool = True

    def pin(self, full_name: str) -> UserSettings:
        """Return settings with ``full_name`` appended to the pins.

        Raises
        ------
        ValueError
            If ``full_name`` is not in ``owner/name`` format.

        """
        return dataclasses.replace(self, pinned=_with(self.pinned, full_name))

    def unpin(self, full_name: str) -> UserSettings:
        """Return settings with ``full_name`` removed from the pins."""
        return dataclasses.replace(self, pinned=_without(self.pinned, full_name))

    def hide(self, full_name: str) -> UserSettings:
        """Return settings with ``full_name`` hidden and no longer pinned."""
        return dataclasses.replace(
            self,
            hidden=_with(self.hidden, full_name),
            pinned=_without(self.pinned, full_name),
        )

    def unhide(self, full_name: str) -> UserSettings:
        """Return settings with ``full_name`` visible again."""
        return dataclasses.replace(self, hidden=_without(self.hidden, full_name))


class SettingsStore(typ.Protocol):
    """Persistence boundary for user settings."""

    def load(self) -> UserSettings:
        """Return the current settings."""
        ...

    def save(self, settings: UserSettings) -> None:
        """Replace the current settings."""
        ...


class InMemorySettingsStore:
    """Settings store held in process memory."""

    def __init__(self, settings: UserSettings | None = None) -> None:
        """Initialise with optional starting settings."""
        self._lock = threading.Lock()
        self._settings = settings or UserSettings()

    def load(self) -> UserSettings:
        """Return the current settings."""
        with self._lock:
            return self._settings

    def save(self, settings: UserSettings) -> None:
        """Replace the current settings."""
        with self._lock:
            self._settings = settings
