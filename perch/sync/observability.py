"""Emit structured events for the sync engine lifecycle.

Events are single log lines of the form ``[event.type] key=value ...`` so log
aggregators can parse them without a structured handler.

Usage
-----
>>> event_logger = SyncEventLogger()
>>> event_logger.log_branch_failed(branch="activity", error=RuntimeError("x"))

"""

from __future__ import annotations

import enum
import typing as typ

from perch.github.errors import error_kind
from perch.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from perch.logging import SupportsLog

logger = get_logger(__name__)


class SyncEventType(enum.StrEnum):
    """Structured log event types for synchronisation."""

    REFRESH_STARTED = "sync.refresh.started"
    REFRESH_COMPLETED = "sync.refresh.completed"
    REFRESH_FAILED = "sync.refresh.failed"
    REFRESH_DISCARDED = "sync.refresh.discarded"
    BRANCH_FAILED = "sync.branch.failed"
    HYDRATE_DEGRADED = "sync.hydrate.degraded"
    BACKFILL_DROPPED = "sync.backfill.dropped"
    DETAIL_FAILED = "sync.detail.failed"
    TICK_FAILED = "sync.scheduler.tick_failed"
    CREDENTIAL_REFRESH_FAILED = "auth.refresh.failed"


class SyncEventLogger:
    """Emit structured sync events via femtologging.

    Success is logged at INFO, degraded-but-continuing outcomes at WARNING
    and cycle-level failures at ERROR.

    Parameters
    ----------
    event_logger
        Logger to write to; defaults to this module's femtologging logger.

    """

    def __init__(self, event_logger: SupportsLog | None = None) -> None:
        """Initialise with an optional logger override."""
        self._logger = event_logger or logger

    def log_refresh_started(self, *, generation: int, started_at: dt.datetime) -> None:
        """Log the start of a refresh cycle."""
        log_info(
            self._logger,
            "[%s] generation=%d started_at=%s",
            SyncEventType.REFRESH_STARTED,
            generation,
            started_at.isoformat(),
        )

    def log_refresh_completed(
        self,
        *,
        generation: int,
        repositories: int,
        activity: int,
        commits: int,
        heatmap_cells: int,
        duration: dt.timedelta,
    ) -> None:
        """Log a published snapshot with its sizes."""
        log_info(
            self._logger,
            "[%s] generation=%d duration_seconds=%.3f repositories=%d "
            "activity=%d commits=%d heatmap_cells=%d",
            SyncEventType.REFRESH_COMPLETED,
            generation,
            duration.total_seconds(),
            repositories,
            activity,
            commits,
            heatmap_cells,
        )

    def log_refresh_failed(self, *, generation: int, error: BaseException) -> None:
        """Log a primary list failure that aborted the cycle."""
        log_error(
            self._logger,
            "[%s] generation=%d kind=%s error=%s",
            SyncEventType.REFRESH_FAILED,
            generation,
            error_kind(error),
            error,
        )

    def log_refresh_discarded(self, *, generation: int, current: int) -> None:
        """Log a result dropped because a newer cycle superseded it."""
        log_info(
            self._logger,
            "[%s] generation=%d current_generation=%d",
            SyncEventType.REFRESH_DISCARDED,
            generation,
            current,
        )

    def log_branch_failed(self, *, branch: str, error: BaseException) -> None:
        """Log a failed independent data branch."""
        log_warning(
            self._logger,
            "[%s] branch=%s kind=%s error=%s",
            SyncEventType.BRANCH_FAILED,
            branch,
            error_kind(error),
            error,
        )

    def log_hydrate_degraded(self, *, full_name: str, error: BaseException) -> None:
        """Log a repository kept shallow after its detail fetch failed."""
        log_warning(
            self._logger,
            "[%s] repository=%s kind=%s error=%s",
            SyncEventType.HYDRATE_DEGRADED,
            full_name,
            error_kind(error),
            error,
        )

    def log_backfill_dropped(self, *, full_name: str, error: BaseException) -> None:
        """Log a pinned repository that could not be backfilled."""
        log_warning(
            self._logger,
            "[%s] repository=%s kind=%s error=%s",
            SyncEventType.BACKFILL_DROPPED,
            full_name,
            error_kind(error),
            error,
        )

    def log_detail_failed(
        self, *, full_name: str, section: str, error: BaseException
    ) -> None:
        """Log a failed repository detail section."""
        log_warning(
            self._logger,
            "[%s] repository=%s section=%s kind=%s error=%s",
            SyncEventType.DETAIL_FAILED,
            full_name,
            section,
            error_kind(error),
            error,
        )

    def log_tick_failed(self, *, error: BaseException) -> None:
        """Log an exception that escaped a scheduled refresh."""
        log_error(
            self._logger,
            "[%s] kind=%s error=%s",
            SyncEventType.TICK_FAILED,
            error_kind(error),
            error,
        )

    def log_credential_refresh_failed(self, *, error: BaseException) -> None:
        """Log a failed background credential refresh."""
        log_warning(
            self._logger,
            "[%s] kind=%s error=%s",
            SyncEventType.CREDENTIAL_REFRESH_FAILED,
            error_kind(error),
            error,
        )
