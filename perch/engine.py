"""Consumer-facing facade over the sync engine.

:class:`DashboardEngine` wires the fetch orchestrator, refresh scheduler and
credential refresh loop around one session store. A UI subscribes to
snapshots, mutates pins and hidden repositories, opens detail pages and drives
sign-in through this class only.

Usage
-----
>>> engine = DashboardEngine(client=client, credentials=coordinator,
...                          settings=InMemorySettingsStore())
>>> unsubscribe = engine.subscribe(render)
>>> await engine.start()
>>> await engine.add_pinned("octo/reef")
>>> await engine.stop()

"""

from __future__ import annotations

import dataclasses
import typing as typ

from perch.auth.loop import DEFAULT_REFRESH_INTERVAL_S, CredentialRefreshLoop
from perch.common.slug import parse_repo_slug
from perch.common.time import utcnow
from perch.github.errors import user_facing_message
from perch.github.host import normalize_host
from perch.logging import get_logger, log_info
from perch.sync.detail import DEFAULT_SECTION_LIMIT, DetailAggregator
from perch.sync.hydrator import DEFAULT_CONCURRENCY_LIMIT, RepositoryHydrator
from perch.sync.observability import SyncEventLogger
from perch.sync.orchestrator import FetchOrchestrator
from perch.sync.scheduler import RefreshScheduler
from perch.sync.session import LoggedIn, LoggedOut, LoggingIn, SessionStore

if typ.TYPE_CHECKING:
    import asyncio
    import collections.abc as cabc
    import datetime as dt

    from perch.auth.coordinator import CredentialCoordinator
    from perch.github.client import RepositoryAPI
    from perch.github.models import Repository
    from perch.settings import SettingsStore, UserSettings
    from perch.sync.session import SessionObserver, SessionState

logger = get_logger(__name__)


class DashboardEngine:
    """Own one dashboard session and everything that refreshes it.

    Parameters
    ----------
    client
        Remote API shared by refresh cycles and detail pages.
    credentials
        Credential coordinator; also read by the refresh loop.
    settings
        Store of user preferences; mutations are saved back to it.
    session
        Optional pre-populated session store.
    hydrate_concurrency
        Maximum simultaneous full-repository fetches per batch.
    credential_refresh_s
        Interval of the credential refresh loop.
    clock
        Source of "now" for every collaborator.

    """

    def __init__(  # noqa: PLR0913 - explicit collaborators
        self,
        *,
        client: RepositoryAPI,
        credentials: CredentialCoordinator,
        settings: SettingsStore,
        session: SessionStore | None = None,
        hydrate_concurrency: int = DEFAULT_CONCURRENCY_LIMIT,
        credential_refresh_s: float = DEFAULT_REFRESH_INTERVAL_S,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Wire the orchestrator, scheduler and credential loop."""
        self._client = client
        self._credentials = credentials
        self._settings = settings
        self._session = session or SessionStore()
        self._clock = clock
        self._events = event_logger or SyncEventLogger()
        self._orchestrator = FetchOrchestrator(
            client=client,
            credentials=credentials,
            settings=settings,
            session=self._session,
            hydrator=RepositoryHydrator(
                client,
                concurrency_limit=hydrate_concurrency,
                event_logger=self._events,
            ),
            clock=clock,
            event_logger=self._events,
        )
        self._scheduler = RefreshScheduler(
            self._orchestrator.refresh, event_logger=self._events
        )
        self._credential_loop = CredentialRefreshLoop(
            credentials, interval_s=credential_refresh_s, event_logger=self._events
        )

    @property
    def state(self) -> SessionState:
        """Return the current snapshot."""
        return self._session.state

    @property
    def settings(self) -> UserSettings:
        """Return the current user settings."""
        return self._settings.load()

    @property
    def scheduler(self) -> RefreshScheduler:
        """Return the refresh scheduler."""
        return self._scheduler

    def subscribe(self, observer: SessionObserver) -> cabc.Callable[[], None]:
        """Call ``observer`` with every published snapshot.

        Returns
        -------
        Callable[[], None]
            Unsubscribes ``observer`` when called.

        """
        return self._session.subscribe(observer)

    # Lifecycle

    async def start(self) -> None:
        """Start the timer and credential loop and request a first refresh."""
        interval = self._settings.load().refresh_interval
        self._scheduler.configure(float(interval), self._orchestrator.refresh)
        self._credential_loop.start()
        self._scheduler.request_refresh()
        log_info(logger, "Dashboard engine started (refresh_interval=%ds)", interval)

    async def stop(self) -> None:
        """Stop the timer, any running refresh and the credential loop."""
        await self._scheduler.stop()
        await self._credential_loop.stop()
        log_info(logger, "Dashboard engine stopped")

    # Refreshing

    def request_refresh(self, *, cancel_in_flight: bool = False) -> asyncio.Task[None]:
        """Request a refresh; see :meth:`RefreshScheduler.request_refresh`."""
        return self._scheduler.request_refresh(cancel_in_flight=cancel_in_flight)

    async def refresh(self, *, cancel_in_flight: bool = False) -> SessionState:
        """Refresh and wait until no refresh is running.

        Without ``cancel_in_flight`` a refresh already running satisfies the
        request.
        """
        self._scheduler.request_refresh(cancel_in_flight=cancel_in_flight)
        await self._scheduler.wait_idle()
        return self._session.state

    async def _apply_settings(self, settings: UserSettings) -> SessionState:
        previous = self._settings.load()
        self._settings.save(settings)
        interval = self._scheduler.interval
        if interval is not None and interval != settings.refresh_interval:
            self._scheduler.configure(
                float(settings.refresh_interval), self._orchestrator.refresh
            )
        if previous == settings:
            return self._session.state
        return await self.refresh(cancel_in_flight=True)

    async def update_settings(self, settings: UserSettings) -> SessionState:
        """Save ``settings`` and refresh if anything changed."""
        return await self._apply_settings(settings)

    async def add_pinned(self, full_name: str) -> SessionState:
        """Pin ``full_name`` and refresh.

        Raises
        ------
        ValueError
            If ``full_name`` is not in ``owner/name`` format.

        """
        return await self._apply_settings(self._settings.load().pin(full_name))

    async def remove_pinned(self, full_name: str) -> SessionState:
        """Unpin ``full_name`` and refresh."""
        return await self._apply_settings(self._settings.load().unpin(full_name))

    async def hide(self, full_name: str) -> SessionState:
        """Hide ``full_name`` (unpinning it) and refresh."""
        return await self._apply_settings(self._settings.load().hide(full_name))

    async def unhide(self, full_name: str) -> SessionState:
        """Show ``full_name`` again and refresh."""
        return await self._apply_settings(self._settings.load().unhide(full_name))

    # Browsing

    async def search_repositories(self, query: str) -> list[Repository]:
        """Search repositories by name for the pin picker."""
        return await self._client.search_repositories(query)

    def detail(
        self, repository: Repository | str, *, limit: int = DEFAULT_SECTION_LIMIT
    ) -> DetailAggregator:
        """Return a detail aggregator for ``repository``.

        ``repository`` is a :class:`Repository` or an ``owner/name`` string.
        The aggregator is not loaded; call ``load()`` on it.

        Raises
        ------
        ValueError
            If a string is not in ``owner/name`` format.

        """
        if isinstance(repository, str):
            owner, name = parse_repo_slug(repository)
        else:
            owner, name = repository.owner, repository.name
        return DetailAggregator(
            self._client,
            owner,
            name,
            limit=limit,
            clock=self._clock,
            event_logger=self._events,
        )

    # Account

    async def login(
        self, client_id: str, client_secret: str, host: str | None = None
    ) -> SessionState:
        """Sign in interactively and refresh.

        The account moves ``LoggedOut -> LoggingIn`` and then to ``LoggedIn``
        on success or back to ``LoggedOut`` with the failure shown in
        ``last_error``.

        Raises
        ------
        InvalidAccountTransitionError
            If already signed in or a sign-in is in progress.
        GitHubError
            Re-raised after the failure has been published.

        """
        settings = self._settings.load()
        target_host = host if host is not None else settings.github_host
        self._session.transition_account(LoggingIn(), last_error=None)
        try:
            normalized = normalize_host(target_host)
            await self._credentials.login(client_id, client_secret, normalized)
        except Exception as exc:
            self._fail_login(exc)
            raise
        try:
            user = await self._client.current_user()
        except Exception as exc:
            await self._credentials.logout()
            self._fail_login(exc)
            raise
        self._settings.save(dataclasses.replace(settings, github_host=normalized))
        self._session.transition_account(LoggedIn(user))
        log_info(logger, "Signed in as %s on %s", user.username, normalized)
        return await self.refresh(cancel_in_flight=True)

    def _fail_login(self, exc: Exception) -> None:
        self._session.transition_account(
            LoggedOut(), last_error=user_facing_message(exc, now=self._clock())
        )

    async def logout(self) -> SessionState:
        """Forget credentials and publish the cleared, signed-out snapshot."""
        await self._credentials.logout()
        log_info(logger, "Signed out")
        return await self.refresh(cancel_in_flight=True)
