"""Common time utilities."""

from __future__ import annotations

import datetime as dt

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_relative(moment: dt.datetime, *, now: dt.datetime) -> str:
    """Describe ``moment`` relative to ``now`` for retry and reset messages.

    Parameters
    ----------
    moment:
        Aware timestamp to describe.
    now:
        Reference timestamp, normally the refresh cycle's clock reading.

    Returns
    -------
    str
        ``"now"`` for past or current moments, otherwise ``"in N <unit>"``.

    Examples
    --------
    >>> base = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
    >>> format_relative(base + dt.timedelta(minutes=5), now=base)
    'in 5 minutes'
    >>> format_relative(base - dt.timedelta(seconds=3), now=base)
    'now'

    """
    seconds = int((moment - now).total_seconds())
    if seconds <= 0:
        return "now"
    if seconds < _MINUTE:
        return f"in {_plural(seconds, 'second')}"
    if seconds < _HOUR:
        return f"in {_plural(seconds // _MINUTE, 'minute')}"
    if seconds < _DAY:
        return f"in {_plural(seconds // _HOUR, 'hour')}"
    return f"in {_plural(seconds // _DAY, 'day')}"
