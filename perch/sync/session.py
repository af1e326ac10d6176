"""Account state machine and the atomically published session snapshot."""

from __future__ import annotations

import dataclasses
import threading
import typing as typ

from perch.logging import get_logger, log_exception

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from perch.github.models import (
        ActivityEvent,
        CommitSummary,
        HeatmapCell,
        HeatmapRange,
        Repository,
        UserIdentity,
    )

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class LoggedOut:
    """No credentials are active."""


@dataclasses.dataclass(frozen=True, slots=True)
class LoggingIn:
    """Interactive sign-in is in progress."""


@dataclasses.dataclass(frozen=True, slots=True)
class LoggedIn:
    """Credentials resolved to a GitHub account."""

    user: UserIdentity


type Account = LoggedOut | LoggingIn | LoggedIn

_ALLOWED_TRANSITIONS: frozenset[tuple[type, type]] = frozenset(
    {
        (LoggedOut, LoggingIn),
        (LoggingIn, LoggedIn),
        (LoggingIn, LoggedOut),
        (LoggedIn, LoggedOut),
        (LoggedOut, LoggedIn),
    }
)


class InvalidAccountTransitionError(RuntimeError):
    """Raised when an account transition is not part of the state machine."""

    @classmethod
    def between(cls, current: Account, target: Account) -> InvalidAccountTransitionError:
        """Return an error naming both states."""
        return cls(
            f"Invalid account transition: {type(current).__name__} -> "
            f"{type(target).__name__}"
        )


def transition(current: Account, target: Account) -> Account:
    """Validate and perform an account transition.

    Raises
    ------
    InvalidAccountTransitionError
        If ``current`` may not move to ``target``.

    """
    if (type(current), type(target)) not in _ALLOWED_TRANSITIONS:
        raise InvalidAccountTransitionError.between(current, target)
    return target


@dataclasses.dataclass(frozen=True, slots=True)
class SessionState:
    """Everything a consumer renders, captured at one instant.

    Each data branch carries its own error so one failing source never blanks
    the others. ``last_error`` is the top-level status line.
    """

    account: Account = LoggedOut()
    repositories: tuple[Repository, ...] = ()
    activity: tuple[ActivityEvent, ...] = ()
    commits: tuple[CommitSummary, ...] = ()
    heatmap: tuple[HeatmapCell, ...] = ()
    heatmap_range: HeatmapRange | None = None
    repositories_error: str | None = None
    activity_error: str | None = None
    commit_error: str | None = None
    heatmap_error: str | None = None
    last_error: str | None = None
    rate_limit_reset: dt.datetime | None = None
    is_refreshing: bool = False
    has_loaded_repositories: bool = False
    captured_at: dt.datetime | None = None

    @property
    def is_logged_in(self) -> bool:
        """Return True when the account is signed in."""
        return isinstance(self.account, LoggedIn)

    @property
    def user(self) -> UserIdentity | None:
        """Return the signed-in identity, if any."""
        return self.account.user if isinstance(self.account, LoggedIn) else None

    def evolve(self, **changes: typ.Any) -> SessionState:  # noqa: ANN401
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def cleared(self) -> SessionState:
        """Return a snapshot with all cached data dropped, account kept."""
        return SessionState(account=self.account, captured_at=self.captured_at)


type SessionObserver = cabc.Callable[[SessionState], None]


class SessionStore:
    """Holds the current snapshot and notifies observers on replacement.

    Snapshots are immutable, so publishing is a single reference swap under a
    lock; readers never see a partially merged state.
    """

    def __init__(self, initial: SessionState | None = None) -> None:
        """Initialise with an optional starting snapshot."""
        self._lock = threading.Lock()
        self._state = initial or SessionState()
        self._observers: list[SessionObserver] = []

    @property
    def state(self) -> SessionState:
        """Return the current snapshot."""
        with self._lock:
            return self._state

    def publish(self, state: SessionState) -> None:
        """Replace the snapshot and notify observers.

        Observer exceptions are logged and do not prevent other observers
        from running.
        """
        with self._lock:
            self._state = state
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(state)
            except Exception as exc:  # noqa: BLE001 - one observer must not break others
                log_exception(logger, "Session observer failed", exc)

    def subscribe(self, observer: SessionObserver) -> cabc.Callable[[], None]:
        """Register ``observer``; return a callable that unregisters it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def transition_account(self, target: Account, **changes: typ.Any) -> SessionState:
        """Move the account to ``target`` and publish the resulting snapshot.

        Raises
        ------
        InvalidAccountTransitionError
            If the transition is not allowed.

        """
        current = self.state
        state = current.evolve(account=transition(current.account, target), **changes)
        self.publish(state)
        return state
