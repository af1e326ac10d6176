"""Contribution heatmap spans and week-aligned date ranges."""

from __future__ import annotations

import datetime as dt
import enum
import typing as typ

from perch.github.models import HeatmapRange

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from perch.github.models import HeatmapCell

_SUNDAY = 6
_MONTHS_PER_YEAR = 12


class HeatmapSpan(enum.IntEnum):
    """How many months of contributions the heatmap shows."""

    ONE_MONTH = 1
    THREE_MONTHS = 3
    SIX_MONTHS = 6
    TWELVE_MONTHS = 12


def _months_back(day: dt.date, months: int) -> dt.date:
    """Return the first day of the month ``months`` before ``day``'s month."""
    index = day.year * _MONTHS_PER_YEAR + (day.month - 1) - months
    year, month_index = divmod(index, _MONTHS_PER_YEAR)
    return dt.date(year, month_index + 1, 1)


def heatmap_range(
    now: dt.datetime, span: HeatmapSpan, *, week_start: int = _SUNDAY
) -> HeatmapRange:
    """Return the day range the heatmap covers for ``span`` ending today.

    The range ends on ``now``'s calendar day and starts on the first day of
    the month ``span`` months back, moved earlier to the start of its week so
    every column is a whole week.

    Parameters
    ----------
    now
        Clock reading of the refresh cycle.
    span
        Months of history to show.
    week_start
        ``datetime.date.weekday`` value of the first day of a week; GitHub
        calendars start on Sunday.

    Examples
    --------
    >>> heatmap_range(dt.datetime(2024, 3, 14, 9, tzinfo=dt.UTC), HeatmapSpan.ONE_MONTH)
    HeatmapRange(start=datetime.date(2024, 1, 28), end=datetime.date(2024, 3, 14))

    """
    end = now.date()
    start = _months_back(end, int(span))
    start -= dt.timedelta(days=(start.weekday() - week_start) % 7)
    return HeatmapRange(start=start, end=end)


def cells_in_range(
    cells: cabc.Iterable[HeatmapCell], span: HeatmapRange
) -> list[HeatmapCell]:
    """Return the cells whose day lies inside ``span``, oldest first."""
    return sorted((cell for cell in cells if cell.day in span), key=lambda c: c.day)
