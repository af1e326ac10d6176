"""Unit tests for repository queries and the filter, sort and limit pipeline."""

from __future__ import annotations

import datetime as dt

import pytest

from perch.settings import UserSettings
from perch.sync.pipeline import apply, sort_repositories
from perch.sync.query import (
    DEFAULT_AGE_CUTOFF,
    OnlyWith,
    RepositoryQuery,
    RepositoryScope,
    SortKey,
)
from tests.helpers.sync_fakes import NOW, make_event, make_repo


def _names(repositories: list) -> list[str]:
    return [repo.full_name for repo in repositories]


class TestRepositoryQuery:
    """Normalisation on construction."""

    def test_names_are_normalised(self) -> None:
        """Pins and hidden names compare case-insensitively."""
        query = RepositoryQuery(
            pinned=(" Octo/Reef ", "octo/reef", "bad"),
            hidden=frozenset({"Octo/Kelp"}),
            owner_filter=frozenset({" Octo ", ""}),
        )

        assert query.pinned == ("octo/reef",)
        assert query.hidden == frozenset({"octo/kelp"})
        assert query.owner_filter == frozenset({"octo"})

    def test_hidden_wins_over_pinned(self) -> None:
        """A name both pinned and hidden is not pinned."""
        query = RepositoryQuery(
            pinned=("octo/reef",), hidden=frozenset({"OCTO/REEF"})
        )

        assert query.pinned == ()

    def test_limit_must_be_positive(self) -> None:
        """A zero limit is rejected."""
        with pytest.raises(ValueError, match="limit"):
            RepositoryQuery(limit=0)

    def test_from_settings(self) -> None:
        """Settings map onto query parameters with a one-year cutoff."""
        settings = UserSettings(
            repo_display_limit=7,
            show_forks=True,
            pinned=("octo/reef",),
            sort_key=SortKey.STARS,
        )

        query = RepositoryQuery.from_settings(settings, now=NOW)

        assert query.limit == 7
        assert query.include_forks is True
        assert query.sort_key is SortKey.STARS
        assert query.age_cutoff == NOW - DEFAULT_AGE_CUTOFF
        assert query.pinned == ("octo/reef",)

    def test_from_settings_without_cutoff_outside_all_scope(self) -> None:
        """Only the ``all`` scope applies the age cutoff."""
        settings = UserSettings(scope=RepositoryScope.HIDDEN)

        query = RepositoryQuery.from_settings(settings, now=NOW, limit=50)

        assert query.age_cutoff is None
        assert query.limit == 50


class TestSorting:
    """Sort keys and the tie-break chain."""

    def test_activity_descending_with_undated_last(self) -> None:
        """Newest activity first; repositories without dates sort last."""
        old = make_repo("a/old", pushed_at=NOW - dt.timedelta(days=3))
        new = make_repo("a/new", pushed_at=NOW)
        undated = make_repo("a/undated", pushed_at=None)

        ordered = sort_repositories([undated, old, new], SortKey.ACTIVITY)

        assert _names(ordered) == ["a/new", "a/old", "a/undated"]

    def test_latest_activity_overrides_pushed_at(self) -> None:
        """Recent events count as activity even when the push is old."""
        stale = make_repo(
            "a/stale",
            pushed_at=NOW - dt.timedelta(days=30),
            activity_events=(make_event("u", occurred_at=NOW),),
        )
        pushed = make_repo("a/pushed", pushed_at=NOW - dt.timedelta(days=1))

        assert _names(sort_repositories([pushed, stale], SortKey.ACTIVITY)) == [
            "a/stale",
            "a/pushed",
        ]

    def test_ties_fall_through_to_name(self) -> None:
        """Equal stars and activity order by name ascending."""
        repos = [make_repo("b/zeta", stars=3), make_repo("B/Alpha", stars=3)]

        assert _names(sort_repositories(repos, SortKey.STARS)) == [
            "B/Alpha",
            "b/zeta",
        ]

    @pytest.mark.parametrize(
        ("sort_key", "expected"),
        [
            (SortKey.ISSUES, ["a/issues", "a/prs", "a/stars"]),
            (SortKey.PULL_REQUESTS, ["a/prs", "a/issues", "a/stars"]),
            (SortKey.STARS, ["a/stars", "a/issues", "a/prs"]),
            (SortKey.NAME, ["a/issues", "a/prs", "a/stars"]),
        ],
    )
    def test_sort_keys(self, sort_key: SortKey, expected: list[str]) -> None:
        """Each key sorts descending except name."""
        repos = [
            make_repo("a/stars", stars=10),
            make_repo("a/prs", open_pulls=5),
            make_repo("a/issues", open_issues=7),
        ]

        assert _names(sort_repositories(repos, sort_key)) == expected


class TestApply:
    """Filters, pin handling and limits."""

    def test_forks_and_archived_are_filtered_unless_pinned(self) -> None:
        """Pinned repositories bypass fork and archived filters."""
        repos = [
            make_repo("a/fork", is_fork=True),
            make_repo("a/archived", is_archived=True),
            make_repo("a/plain"),
        ]
        query = RepositoryQuery(pinned=("a/fork",))

        assert _names(apply(repos, query)) == ["a/fork", "a/plain"]

    def test_hidden_never_shown_in_all_scope(self) -> None:
        """Hidden repositories are dropped, even when pinned."""
        repos = [make_repo("a/one"), make_repo("a/two")]
        query = RepositoryQuery(pinned=("a/one",), hidden=frozenset({"a/one"}))

        assert _names(apply(repos, query)) == ["a/two"]

    def test_hidden_scope_lists_hidden_only(self) -> None:
        """The hidden scope shows exactly the hidden repositories."""
        repos = [make_repo("a/one"), make_repo("a/two")]
        query = RepositoryQuery(
            scope=RepositoryScope.HIDDEN, hidden=frozenset({"a/two"})
        )

        assert _names(apply(repos, query)) == ["a/two"]

    def test_pinned_scope_lists_pins_in_order(self) -> None:
        """The pinned scope ignores unpinned repositories."""
        repos = [make_repo("a/one"), make_repo("a/two"), make_repo("a/three")]
        query = RepositoryQuery(
            scope=RepositoryScope.PINNED, pinned=("a/three", "a/one")
        )

        assert _names(apply(repos, query)) == ["a/three", "a/one"]

    @pytest.mark.parametrize(
        ("only_with", "expected"),
        [
            (OnlyWith.NONE, ["a/issues", "a/none", "a/prs"]),
            (OnlyWith.WORK, ["a/issues", "a/prs"]),
            (OnlyWith.ISSUES, ["a/issues"]),
            (OnlyWith.PULL_REQUESTS, ["a/prs"]),
        ],
    )
    def test_only_with(self, only_with: OnlyWith, expected: list[str]) -> None:
        """Open-work requirements filter unpinned repositories."""
        repos = [
            make_repo("a/prs", open_pulls=1),
            make_repo("a/issues", open_issues=1),
            make_repo("a/none"),
        ]
        query = RepositoryQuery(only_with=only_with, sort_key=SortKey.NAME)

        assert _names(apply(repos, query)) == expected

    def test_owner_filter(self) -> None:
        """Only listed owners survive."""
        repos = [make_repo("Octo/one"), make_repo("other/two")]
        query = RepositoryQuery(owner_filter=frozenset({"octo"}))

        assert _names(apply(repos, query)) == ["Octo/one"]

    def test_age_cutoff_spares_pins_but_not_undated(self) -> None:
        """Old and undated unpinned repositories drop; pins stay."""
        old = NOW - dt.timedelta(days=400)
        repos = [
            make_repo("a/old", pushed_at=old),
            make_repo("a/pinned-old", pushed_at=old),
            make_repo("a/undated", pushed_at=None),
        ]
        query = RepositoryQuery(
            age_cutoff=NOW - DEFAULT_AGE_CUTOFF, pinned=("a/pinned-old",)
        )

        assert _names(apply(repos, query)) == ["a/pinned-old"]

    def test_pin_priority_exempts_pins_from_limit(self) -> None:
        """Pins lead and do not count against a limit they exceed."""
        repos = [make_repo("a/one"), make_repo("a/two"), make_repo("a/three")]
        query = RepositoryQuery(
            limit=1, pinned=("a/three", "a/two"), sort_key=SortKey.NAME
        )

        assert _names(apply(repos, query)) == ["a/three", "a/two"]

    def test_limit_fills_after_pins(self) -> None:
        """Remaining slots go to unpinned repositories in sort order."""
        repos = [
            make_repo("a/one", stars=1),
            make_repo("a/two", stars=2),
            make_repo("a/three", stars=3),
        ]
        query = RepositoryQuery(limit=2, pinned=("a/one",), sort_key=SortKey.STARS)

        assert _names(apply(repos, query)) == ["a/one", "a/three"]

    def test_without_pin_priority_pins_sort_with_others(self) -> None:
        """Pins are sorted and limited like everything else."""
        repos = [make_repo("a/one", stars=1), make_repo("a/two", stars=2)]
        query = RepositoryQuery(
            limit=1,
            pinned=("a/one",),
            pin_priority=False,
            sort_key=SortKey.STARS,
        )

        assert _names(apply(repos, query)) == ["a/two"]

    def test_duplicates_keep_first(self) -> None:
        """Duplicates by full name collapse to the first occurrence."""
        first = make_repo("a/one", stars=1)
        repos = [first, make_repo("A/One", stars=9)]

        assert apply(repos, RepositoryQuery()) == [first]

    def test_apply_is_pure(self) -> None:
        """Repeated application gives the same answer."""
        repos = [make_repo("a/one", stars=1), make_repo("a/two", stars=2)]
        query = RepositoryQuery(sort_key=SortKey.STARS)

        assert apply(repos, query) == apply(list(repos), query)
