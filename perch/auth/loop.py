"""Background credential refresh on its own clock."""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from perch.sync.observability import SyncEventLogger

if typ.TYPE_CHECKING:
    from .coordinator import CredentialCoordinator

DEFAULT_REFRESH_INTERVAL_S = 60.0


class CredentialRefreshLoop:
    """Periodically refresh credentials, independent of data refreshes.

    The loop never awaits the sync orchestrator and the orchestrator never
    awaits the loop; they share only the coordinator's lock-guarded store.
    """

    def __init__(
        self,
        coordinator: CredentialCoordinator,
        *,
        interval_s: float = DEFAULT_REFRESH_INTERVAL_S,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Initialise the loop with a coordinator and tick interval."""
        self._coordinator = coordinator
        self._interval_s = interval_s
        self._events = event_logger or SyncEventLogger()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return True while the loop task is active."""
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """Refresh credentials once if any are stored.

        Returns
        -------
        bool
            ``True`` when a refresh was attempted and succeeded.

        """
        if self._coordinator.load_tokens() is None:
            return False
        try:
            await self._coordinator.refresh_if_needed()
        except Exception as exc:  # noqa: BLE001 - failures are reported, loop continues
            self._events.log_credential_refresh_failed(error=exc)
            return False
        return True

    async def run(self) -> None:
        """Run the refresh loop forever."""
        while True:
            await self.tick()
            await asyncio.sleep(self._interval_s)

    def start(self) -> None:
        """Start the loop on the running event loop if not already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        """Cancel the loop task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
