"""Refresh cycle: fetch, merge, filter, hydrate and publish one snapshot."""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses
import datetime as dt
import typing as typ

from perch.common.slug import canonical_full_name
from perch.common.time import utcnow
from perch.github.errors import ErrorKind, error_kind, user_facing_message

from .activity import DEFAULT_ACTIVITY_LIMIT, merge_activity, repository_events
from .heatmap import cells_in_range, heatmap_range
from .hydrator import RepositoryHydrator
from .observability import SyncEventLogger
from .pipeline import apply
from .query import RepositoryQuery
from .session import LoggedIn, LoggedOut, SessionState, transition

if typ.TYPE_CHECKING:
    from perch.auth.coordinator import CredentialCoordinator
    from perch.github.client import RepositoryAPI
    from perch.github.models import (
        ActivityEvent,
        CommitSummary,
        HeatmapCell,
        HeatmapRange,
        Repository,
    )
    from perch.settings import SettingsStore, UserSettings

    from .session import Account, SessionStore

DEFAULT_LIST_LIMIT = 100
DEFAULT_COMMIT_LIMIT = 20


@dataclasses.dataclass(frozen=True, slots=True)
class _BranchResult[T]:
    """Outcome of one independent data branch."""

    value: T
    error: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class _CycleContext:
    """Values fixed for the duration of one refresh cycle."""

    generation: int
    now: dt.datetime
    settings: UserSettings
    previous: SessionState
    heatmap_range: HeatmapRange


def merge_unique(repositories: cabc.Iterable[Repository]) -> list[Repository]:
    """Deduplicate by full name keeping first-seen position.

    When a later duplicate is a full record and the first is shallow, the full
    record takes the first one's place.
    """
    merged: dict[str, Repository] = {}
    for repo in repositories:
        existing = merged.get(repo.key)
        merged[repo.key] = repo if existing is None else existing.reconcile(repo)
    return list(merged.values())


def missing_pins(
    requested: cabc.Iterable[str],
    query: RepositoryQuery,
    listed: cabc.Iterable[Repository],
) -> list[str]:
    """Return pinned names, as entered, that the primary list did not include.

    Hidden and malformed names are skipped; ``query.pinned`` already excludes
    them.
    """
    wanted = set(query.pinned)
    listed_keys = {repo.key for repo in listed}
    missing: list[str] = []
    for raw in requested:
        try:
            key = canonical_full_name(raw)
        except ValueError:
            continue
        if key in wanted and key not in listed_keys:
            missing.append(raw)
    return missing


def stamp_pinned_order(
    repositories: cabc.Iterable[Repository], pinned: cabc.Sequence[str]
) -> list[Repository]:
    """Record each pinned repository's position in ``sort_order``."""
    rank = {name: index for index, name in enumerate(pinned)}
    return [repo.with_sort_order(rank.get(repo.key)) for repo in repositories]


class FetchOrchestrator:
    """Run refresh cycles and publish their snapshots.

    ``refresh`` is idempotent and safe to call repeatedly. Each call takes a
    generation number; only the newest generation may publish, so results of a
    superseded or cancelled cycle are discarded.

    Parameters
    ----------
    client
        Remote API used for every fetch.
    credentials
        Source of stored tokens and the credential-health check.
    settings
        Source of the user's current preferences.
    session
        Store that receives published snapshots.
    hydrator
        Enriches visible repositories and backfills pinned ones.
    clock
        Source of "now"; read once per cycle.

    """

    def __init__(  # noqa: PLR0913 - collaborators are injected explicitly
        self,
        *,
        client: RepositoryAPI,
        credentials: CredentialCoordinator,
        settings: SettingsStore,
        session: SessionStore,
        hydrator: RepositoryHydrator | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
        event_logger: SyncEventLogger | None = None,
        list_limit: int = DEFAULT_LIST_LIMIT,
        activity_limit: int = DEFAULT_ACTIVITY_LIMIT,
        commit_limit: int = DEFAULT_COMMIT_LIMIT,
    ) -> None:
        """Initialise the orchestrator with its collaborators."""
        self._client = client
        self._credentials = credentials
        self._settings = settings
        self._session = session
        self._events = event_logger or SyncEventLogger()
        self._hydrator = hydrator or RepositoryHydrator(
            client, event_logger=self._events
        )
        self._clock = clock
        self._list_limit = list_limit
        self._activity_limit = activity_limit
        self._commit_limit = commit_limit
        self._generation = 0

    @property
    def generation(self) -> int:
        """Return the number of the newest cycle started."""
        return self._generation

    def _publish(self, generation: int, state: SessionState) -> bool:
        if generation != self._generation:
            self._events.log_refresh_discarded(
                generation=generation, current=self._generation
            )
            return False
        self._session.publish(state)
        return True

    async def refresh(self) -> SessionState:
        """Run one refresh cycle and return the snapshot it produced.

        Without stored credentials the logged-out steady state is published:
        all data cleared and no error. A cancelled cycle that is still the
        newest clears ``is_refreshing`` before the cancellation propagates.
        """
        self._generation += 1
        generation = self._generation
        now = self._clock()

        if self._credentials.load_tokens() is None:
            state = SessionState(account=LoggedOut(), captured_at=now)
            self._publish(generation, state)
            return state

        previous = self._session.state
        self._publish(generation, previous.evolve(is_refreshing=True))
        settings = self._settings.load()
        context = _CycleContext(
            generation=generation,
            now=now,
            settings=settings,
            previous=previous,
            heatmap_range=heatmap_range(now, settings.heatmap_span),
        )
        self._events.log_refresh_started(generation=generation, started_at=now)
        try:
            return await self._run_cycle(context)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._session.publish(self._session.state.evolve(is_refreshing=False))
            raise

    async def _recover_account(self, account: Account) -> Account:
        """Resolve the signed-in user when credentials exist but state is out."""
        if not isinstance(account, LoggedOut):
            return account
        try:
            user = await self._client.current_user()
        except Exception as exc:  # noqa: BLE001 - recovery is best effort
            self._events.log_branch_failed(branch="identity", error=exc)
            return account
        return transition(account, LoggedIn(user))

    async def _run_cycle(self, context: _CycleContext) -> SessionState:
        account = await self._recover_account(context.previous.account)
        try:
            listed = await self._client.repository_list(self._list_limit)
        except Exception as exc:  # noqa: BLE001 - mapped to a published failure state
            return await self._handle_list_failure(context, account, exc)

        query = RepositoryQuery.from_settings(context.settings, now=context.now)
        backfilled = await self._hydrator.backfill(
            missing_pins(context.settings.pinned, query, listed)
        )
        visible = apply(merge_unique([*listed, *backfilled]), query)
        hydrated = await self._hydrator.hydrate(visible)
        repositories = stamp_pinned_order(hydrated, query.pinned)

        user = account.user if isinstance(account, LoggedIn) else None
        username = user.username if user is not None else None
        heatmap, activity, commits = await asyncio.gather(
            self._load_heatmap(context, username),
            self._load_activity(context, username, repositories),
            self._load_commits(context, username),
        )

        state = SessionState(
            account=account,
            repositories=tuple(repositories),
            activity=activity.value,
            commits=commits.value,
            heatmap=heatmap.value,
            heatmap_range=context.heatmap_range,
            activity_error=activity.error,
            commit_error=commits.error,
            heatmap_error=heatmap.error,
            last_error=self._client.rate_limit_message(context.now),
            rate_limit_reset=self._client.rate_limit_reset(context.now),
            is_refreshing=False,
            has_loaded_repositories=True,
            captured_at=context.now,
        )
        if self._publish(context.generation, state):
            self._events.log_refresh_completed(
                generation=context.generation,
                repositories=len(state.repositories),
                activity=len(state.activity),
                commits=len(state.commits),
                heatmap_cells=len(state.heatmap),
                duration=self._clock() - context.now,
            )
        return state

    async def _handle_list_failure(
        self, context: _CycleContext, account: Account, exc: Exception
    ) -> SessionState:
        """Keep previous data and surface the error; sign out on dead credentials."""
        self._events.log_refresh_failed(generation=context.generation, error=exc)
        message = user_facing_message(exc, now=context.now)

        if error_kind(exc) is ErrorKind.AUTH and not await self._credentials_healthy():
            await self._credentials.logout()
            if not isinstance(account, LoggedOut):
                account = transition(account, LoggedOut())
            state = SessionState(
                account=account,
                repositories_error=message,
                last_error=message,
                captured_at=context.now,
            )
            self._publish(context.generation, state)
            return state

        state = context.previous.evolve(
            account=account,
            repositories_error=message,
            last_error=message,
            rate_limit_reset=self._client.rate_limit_reset(context.now),
            is_refreshing=False,
        )
        self._publish(context.generation, state)
        return state

    async def _credentials_healthy(self) -> bool:
        try:
            tokens = await self._credentials.refresh_if_needed()
        except Exception as exc:  # noqa: BLE001 - failure means unhealthy
            self._events.log_credential_refresh_failed(error=exc)
            return False
        return tokens is not None

    async def _load_heatmap(
        self, context: _CycleContext, username: str | None
    ) -> _BranchResult[tuple[HeatmapCell, ...]]:
        if not context.settings.show_contribution_header or username is None:
            return _BranchResult(())
        try:
            cells = await self._client.user_contribution_heatmap(username)
        except Exception as exc:  # noqa: BLE001 - branch-local failure
            self._events.log_branch_failed(branch="heatmap", error=exc)
            return _BranchResult(
                context.previous.heatmap, user_facing_message(exc, now=context.now)
            )
        return _BranchResult(tuple(cells_in_range(cells, context.heatmap_range)))

    async def _load_activity(
        self,
        context: _CycleContext,
        username: str | None,
        repositories: cabc.Sequence[Repository],
    ) -> _BranchResult[tuple[ActivityEvent, ...]]:
        scope = context.settings.activity_scope
        embedded = repository_events(repositories)
        if username is None:
            merged = merge_activity(
                [], embedded, username=None, limit=self._activity_limit
            )
            return _BranchResult(tuple(merged))
        try:
            user_events = await self._client.user_activity_events(
                username, scope, self._activity_limit
            )
        except Exception as exc:  # noqa: BLE001 - branch-local failure
            self._events.log_branch_failed(branch="activity", error=exc)
            stale = merge_activity(
                context.previous.activity,
                embedded,
                username=username,
                scope=scope,
                limit=self._activity_limit,
            )
            return _BranchResult(
                tuple(stale), user_facing_message(exc, now=context.now)
            )
        merged = merge_activity(
            user_events,
            embedded,
            username=username,
            scope=scope,
            limit=self._activity_limit,
        )
        return _BranchResult(tuple(merged))

    async def _load_commits(
        self, context: _CycleContext, username: str | None
    ) -> _BranchResult[tuple[CommitSummary, ...]]:
        if username is None:
            return _BranchResult(())
        try:
            commits = await self._client.user_commit_events(
                username, context.settings.activity_scope, self._commit_limit
            )
        except Exception as exc:  # noqa: BLE001 - branch-local failure
            self._events.log_branch_failed(branch="commits", error=exc)
            return _BranchResult(
                context.previous.commits, user_facing_message(exc, now=context.now)
            )
        return _BranchResult(tuple(commits[: self._commit_limit]))
