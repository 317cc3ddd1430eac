"""Parsing for the `limit=<from>:<to>` query value shared by routes and scripts."""

from typing import Optional, Tuple


def parse_date_range(date_range: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """Split a `"<from>:<to>"` value into epoch-ms bounds.

    Either side may be empty. Anything after a second `:` is ignored.
    Raises ValueError when a bound is not an integer.
    """

    if not date_range:
        return None, None
    parts = date_range.split(":")[:2]
    try:
        bounds = [int(p) if p.strip() else None for p in parts]
    except ValueError:
        raise ValueError(f"Invalid date range: {date_range!r}")
    if len(bounds) == 1:
        bounds.append(None)
    return bounds[0], bounds[1]
