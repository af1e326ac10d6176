"""Bounded-concurrency enrichment of shallow repository records."""

from __future__ import annotations

import asyncio
import typing as typ

from perch.common.slug import normalize_full_name, parse_repo_slug

from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from perch.github.models import Repository

DEFAULT_CONCURRENCY_LIMIT = 4


class RepositoryFetcher(typ.Protocol):
    """Subset of the GitHub client used for hydration."""

    async def full_repository(self, owner: str, name: str) -> Repository:
        """Return the full record for one repository."""
        ...


def _batches[T](items: list[T], size: int) -> cabc.Iterator[list[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _split_outcomes[T, R](
    batch: list[T], gathered: list[R | BaseException]
) -> cabc.Iterator[tuple[T, R | Exception]]:
    """Pair inputs with outcomes, re-raising non-``Exception`` failures.

    Cancellation and interpreter shutdown must never be absorbed as an
    ordinary per-item failure.
    """
    for item, outcome in zip(batch, gathered, strict=True):
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        yield item, typ.cast("R | Exception", outcome)


def _checked_limit(concurrency_limit: int) -> int:
    if concurrency_limit < 1:
        msg = f"concurrency_limit must be positive, got: {concurrency_limit}"
        raise ValueError(msg)
    return concurrency_limit


class RepositoryHydrator:
    """Replace shallow records with full ones, a batch at a time.

    Each batch holds at most ``concurrency_limit`` fetches, which run
    concurrently; the whole batch settles before the next begins. A failed
    fetch leaves the shallow record in place.

    Parameters
    ----------
    client
        Source of full repository records.
    concurrency_limit
        Maximum number of simultaneous fetches.
    event_logger
        Receives degradation events.

    """

    def __init__(
        self,
        client: RepositoryFetcher,
        *,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Initialise the hydrator."""
        self._client = client
        self._concurrency_limit = _checked_limit(concurrency_limit)
        self._events = event_logger or SyncEventLogger()

    @property
    def concurrency_limit(self) -> int:
        """Return the per-batch fetch ceiling."""
        return self._concurrency_limit

    def _batch_size(self, count: int, concurrency_limit: int | None) -> int:
        limit = (
            self._concurrency_limit
            if concurrency_limit is None
            else _checked_limit(concurrency_limit)
        )
        return max(1, min(limit, count))

    async def hydrate(
        self,
        repositories: cabc.Sequence[Repository],
        concurrency_limit: int | None = None,
    ) -> list[Repository]:
        """Return full records where available, shallow ones otherwise.

        The result has the same length and order as ``repositories``.
        Cancellation propagates immediately and no further batches start.

        Raises
        ------
        ValueError
            If ``concurrency_limit`` is given and is not positive.

        """
        originals = list(repositories)
        size = self._batch_size(len(originals), concurrency_limit)
        if not originals:
            return []
        hydrated: dict[str, Repository] = {}
        for batch in _batches(originals, size):
            gathered = await asyncio.gather(
                *(self._client.full_repository(r.owner, r.name) for r in batch),
                return_exceptions=True,
            )
            for repo, outcome in _split_outcomes(batch, gathered):
                if isinstance(outcome, Exception):
                    self._events.log_hydrate_degraded(
                        full_name=repo.full_name, error=outcome
                    )
                    continue
                hydrated[repo.key] = outcome
        return [hydrated.get(repo.key, repo) for repo in originals]

    async def backfill(self, full_names: cabc.Iterable[str]) -> list[Repository]:
        """Fetch repositories by full name, dropping any that fail.

        Used for pinned repositories missing from the primary list. Names that
        do not parse as ``owner/name`` are dropped as well.
        """
        targets: list[tuple[str, str]] = []
        seen: set[str] = set()
        for full_name in full_names:
            try:
                owner, name = parse_repo_slug(full_name)
            except ValueError:
                continue
            key = normalize_full_name(f"{owner}/{name}")
            if key not in seen:
                seen.add(key)
                targets.append((owner, name))
        if not targets:
            return []

        fetched: list[Repository] = []
        for batch in _batches(targets, self._batch_size(len(targets), None)):
            gathered = await asyncio.gather(
                *(self._client.full_repository(owner, name) for owner, name in batch),
                return_exceptions=True,
            )
            for (owner, name), outcome in _split_outcomes(batch, gathered):
                if isinstance(outcome, Exception):
                    self._events.log_backfill_dropped(
                        full_name=f"{owner}/{name}", error=outcome
                    )
                    continue
                fetched.append(outcome)
        return fetched
