"""Perch command-line runtime.

Builds a dashboard engine from environment variables, runs one refresh and
logs the resulting snapshot. With ``PERCH_WATCH`` set the engine keeps
refreshing on the settings interval and logs every published snapshot until
interrupted.

Configuration is driven by environment variables; see
:meth:`perch.config.EngineConfig.from_env`.

Run directly with ``python -m perch.runtime`` or the ``perch`` script.
"""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from perch.auth.coordinator import StaticTokenCoordinator
from perch.config import EngineConfig, PerchConfigError
from perch.engine import DashboardEngine
from perch.github.client import GitHubRestClient
from perch.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from perch.settings import InMemorySettingsStore, UserSettings

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx

    from perch.sync.session import SessionState

__all__ = ["describe_state", "main", "open_engine", "run"]

logger = get_logger(__name__)


@contextlib.asynccontextmanager
async def open_engine(
    config: EngineConfig,
    *,
    settings: UserSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> cabc.AsyncIterator[DashboardEngine]:
    """Yield an engine built from ``config`` and close its client afterwards.

    Parameters
    ----------
    config
        Process configuration.
    settings
        Starting user settings; defaults apply when omitted.
    http_client
        Optional transport override, used by tests.

    """
    credentials = StaticTokenCoordinator(config.github_token)
    client = GitHubRestClient(
        config.client_config(),
        token_provider=credentials,
        http_client=http_client,
    )
    engine = DashboardEngine(
        client=client,
        credentials=credentials,
        settings=InMemorySettingsStore(settings),
        hydrate_concurrency=config.hydrate_concurrency,
        credential_refresh_s=float(config.credential_refresh_seconds),
    )
    try:
        yield engine
    finally:
        await engine.stop()
        await client.aclose()


def describe_state(state: SessionState) -> str:
    """Return a one-line summary of a snapshot."""
    user = state.user
    account = user.username if user is not None else type(state.account).__name__
    return (
        f"account={account} repositories={len(state.repositories)} "
        f"activity={len(state.activity)} commits={len(state.commits)} "
        f"heatmap_cells={len(state.heatmap)} error={state.last_error}"
    )


def _log_snapshot(state: SessionState) -> None:
    if state.is_refreshing:
        return
    log_info(logger, "Snapshot %s", describe_state(state))


async def run(config: EngineConfig) -> int:
    """Run the dashboard once or until cancelled; return the exit status."""
    async with open_engine(config) as engine:
        if config.github_token is None:
            log_warning(logger, "PERCH_GITHUB_TOKEN is not set; running signed out")
        if config.watch:
            engine.subscribe(_log_snapshot)
            await engine.start()
            await asyncio.Event().wait()
            return 0

        state = await engine.refresh()
        _log_snapshot(state)
        for repo in state.repositories:
            log_info(
                logger,
                "%s stars=%d issues=%d prs=%d",
                repo.full_name,
                repo.stars,
                repo.open_issues,
                repo.open_pulls,
            )
        return 1 if state.repositories_error else 0


def main() -> None:
    """Configure logging, load configuration and run the dashboard."""
    try:
        config = EngineConfig.from_env()
    except PerchConfigError as exc:
        # Validation failures need no traceback
        log_error(logger, "Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid PERCH_LOG_LEVEL %r, falling back to %s",
            config.log_level,
            normalized_level,
        )
    log_info(
        logger,
        "Starting Perch (api_url=%s, watch=%s, log_level=%s)",
        config.api_url,
        config.watch,
        normalized_level,
    )

    status = 0
    with contextlib.suppress(KeyboardInterrupt):
        status = asyncio.run(run(config))
    raise SystemExit(status)


if __name__ == "__main__":
    main()
