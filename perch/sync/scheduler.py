"""Periodic and on-demand refresh triggering with coalescing."""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

type RefreshAction = cabc.Callable[[], cabc.Awaitable[object]]


class SchedulerNotConfiguredError(RuntimeError):
    """Raised when a refresh is requested before an action is set."""

    @classmethod
    def missing_action(cls) -> SchedulerNotConfiguredError:
        """Return an error for a scheduler without a refresh action."""
        return cls("RefreshScheduler has no refresh action configured")


class RefreshScheduler:
    """Run at most one refresh at a time, on a timer or on demand.

    ``request_refresh(cancel_in_flight=False)`` coalesces: while a refresh is
    running it returns the running task instead of starting another.
    ``request_refresh(cancel_in_flight=True)`` cancels the running refresh and
    starts a fresh one once the cancelled one has unwound.

    Parameters
    ----------
    on_tick
        Refresh action to run; may also be supplied by :meth:`configure`.
    event_logger
        Receives failures escaping the refresh action.

    """

    def __init__(
        self,
        on_tick: RefreshAction | None = None,
        *,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Initialise the scheduler without starting a timer."""
        self._on_tick = on_tick
        self._events = event_logger or SyncEventLogger()
        self._interval: float | None = None
        self._ticker: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Task[None] | None = None
        self._executions = 0

    @property
    def in_flight(self) -> bool:
        """Return True while a refresh is running."""
        return self._in_flight is not None and not self._in_flight.done()

    @property
    def interval(self) -> float | None:
        """Return the configured timer interval in seconds."""
        return self._interval

    @property
    def executions(self) -> int:
        """Return how many refresh executions have started."""
        return self._executions

    def configure(self, interval: float, on_tick: RefreshAction) -> None:
        """(Re)start the timer: ``on_tick`` runs every ``interval`` seconds.

        Must be called from a running event loop. The first timed refresh
        fires one interval after configuration.
        """
        if interval <= 0:
            msg = f"interval must be positive, got: {interval}"
            raise ValueError(msg)
        if self._ticker is not None:
            self._ticker.cancel()
        self._interval = interval
        self._on_tick = on_tick
        self._ticker = asyncio.get_running_loop().create_task(self._tick_loop(interval))

    async def _tick_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.request_refresh(cancel_in_flight=False)

    def request_refresh(self, *, cancel_in_flight: bool = False) -> asyncio.Task[None]:
        """Start a refresh, coalescing with or replacing one in flight.

        Returns
        -------
        asyncio.Task[None]
            The task running the refresh that satisfies this request.

        Raises
        ------
        SchedulerNotConfiguredError
            If no refresh action has been supplied.

        """
        if self._on_tick is None:
            raise SchedulerNotConfiguredError.missing_action()
        current = self._in_flight
        if current is not None and not current.done():
            if not cancel_in_flight:
                return current
            current.cancel()
        else:
            current = None
        task = asyncio.get_running_loop().create_task(
            self._execute(self._on_tick, current)
        )
        self._in_flight = task
        return task

    def force_refresh(self) -> asyncio.Task[None]:
        """Cancel any running refresh and start a new one."""
        return self.request_refresh(cancel_in_flight=True)

    async def _execute(
        self, on_tick: RefreshAction, superseded: asyncio.Task[None] | None
    ) -> None:
        if superseded is not None:
            await asyncio.wait({superseded})
        self._executions += 1
        try:
            await on_tick()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - a failed tick must not stop the timer
            self._events.log_tick_failed(error=exc)

    async def wait_idle(self) -> None:
        """Wait until no refresh is running."""
        while (task := self._in_flight) is not None and not task.done():
            await asyncio.wait({task})

    async def stop(self) -> None:
        """Cancel the timer and any running refresh, then wait for both."""
        tasks = [task for task in (self._ticker, self._in_flight) if task is not None]
        self._ticker = None
        self._in_flight = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
