"""Unit tests for batched repository hydration and pinned backfill."""

from __future__ import annotations

import asyncio

import pytest

from perch.github.errors import GitHubAPIError
from perch.sync.hydrator import RepositoryHydrator
from perch.sync.observability import SyncEventLogger
from tests.helpers.sync_fakes import FakeLogger, FakeRepositoryAPI, make_repo


def _api_with_full(*names: str) -> FakeRepositoryAPI:
    api = FakeRepositoryAPI()
    for name in names:
        api.full[name.lower()] = make_repo(name, stars=99, detailed=True)
    return api


def test_rejects_non_positive_limit() -> None:
    """The concurrency limit must be at least one."""
    with pytest.raises(ValueError, match="concurrency_limit"):
        RepositoryHydrator(FakeRepositoryAPI(), concurrency_limit=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -2])
async def test_hydrate_rejects_non_positive_call_limit(limit: int) -> None:
    """A per-call limit is validated rather than replaced by the default."""
    api = _api_with_full("octo/one")
    hydrator = RepositoryHydrator(api, concurrency_limit=4)

    with pytest.raises(ValueError, match="concurrency_limit"):
        await hydrator.hydrate([make_repo("octo/one")], concurrency_limit=limit)

    assert "full_repository" not in api.calls


@pytest.mark.asyncio
async def test_hydrate_replaces_shallow_records_in_order() -> None:
    """Full records replace shallow ones; order and length are kept."""
    names = [f"octo/repo{index}" for index in range(6)]
    api = _api_with_full(*names)
    shallow = [make_repo(name) for name in names]

    hydrated = await RepositoryHydrator(api, concurrency_limit=4).hydrate(shallow)

    assert [repo.full_name for repo in hydrated] == names
    assert all(repo.detailed for repo in hydrated)


@pytest.mark.asyncio
async def test_hydrate_never_exceeds_concurrency_limit() -> None:
    """At most ``concurrency_limit`` fetches are in flight."""
    names = [f"octo/repo{index}" for index in range(10)]
    api = _api_with_full(*names)

    await RepositoryHydrator(api, concurrency_limit=3).hydrate(
        [make_repo(name) for name in names]
    )

    assert api.peak_full_fetches <= 3
    assert api.calls.count("full_repository") == 10


@pytest.mark.asyncio
async def test_call_limit_overrides_default() -> None:
    """A per-call limit replaces the configured one."""
    names = [f"octo/repo{index}" for index in range(4)]
    api = _api_with_full(*names)

    await RepositoryHydrator(api, concurrency_limit=4).hydrate(
        [make_repo(name) for name in names], concurrency_limit=1
    )

    assert api.peak_full_fetches == 1


@pytest.mark.asyncio
async def test_failed_fetch_keeps_shallow_record() -> None:
    """A failure degrades only that repository and is logged."""
    api = _api_with_full("octo/good")
    api.failures["full_repository:octo/bad"] = GitHubAPIError.http_error(500)
    logger = FakeLogger()
    hydrator = RepositoryHydrator(api, event_logger=SyncEventLogger(logger))
    bad = make_repo("octo/bad")

    hydrated = await hydrator.hydrate([bad, make_repo("octo/good")])

    assert hydrated[0] is bad
    assert hydrated[1].detailed is True
    assert logger.messages("[sync.hydrate.degraded] repository=octo/bad")


@pytest.mark.asyncio
async def test_empty_input_makes_no_calls() -> None:
    """Nothing to hydrate means no fetches."""
    api = FakeRepositoryAPI()

    assert await RepositoryHydrator(api).hydrate([]) == []
    assert api.calls == []


@pytest.mark.asyncio
async def test_cancellation_propagates() -> None:
    """Cancelling the hydration cancels in-flight fetches."""
    api = _api_with_full("octo/slow")
    api.gates["full_repository"] = asyncio.Event()
    task = asyncio.create_task(
        RepositoryHydrator(api).hydrate([make_repo("octo/slow")])
    )
    await asyncio.sleep(0)

    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_backfill_fetches_unique_names_and_drops_failures() -> None:
    """Backfill skips malformed and duplicate names and failed fetches."""
    api = _api_with_full("octo/one")
    api.failures["full_repository:octo/two"] = GitHubAPIError.not_found()
    logger = FakeLogger()
    hydrator = RepositoryHydrator(api, event_logger=SyncEventLogger(logger))

    fetched = await hydrator.backfill(["octo/one", "OCTO/ONE", "bad", "octo/two"])

    assert [repo.full_name for repo in fetched] == ["octo/one"]
    assert api.calls.count("full_repository") == 2
    assert logger.messages("[sync.backfill.dropped] repository=octo/two")


@pytest.mark.asyncio
async def test_backfill_of_nothing() -> None:
    """No names means no fetches."""
    api = FakeRepositoryAPI()

    assert await RepositoryHydrator(api).backfill(["malformed"]) == []
    assert api.calls == []
