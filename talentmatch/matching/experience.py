"""Years-of-experience derivation from work-history spans."""

import re
from datetime import date
from typing import Iterable, Optional, Tuple

from talentmatch.domain.models import WorkHistoryEntry
from talentmatch.utils.timestamps import utc_today

ONGOING_MARKERS = frozenset({"present", "current", "now", "ongoing"})

_YEAR_MONTH_PATTERNS = (
    re.compile(r"^(?P<year>\d{4})-(?P<month>\d{1,2})(?:-\d{1,2})?(?:[T ].*)?$"),
    re.compile(r"^(?P<month>\d{1,2})/(?P<year>\d{4})$"),
    re.compile(r"^(?P<year>\d{4})$"),
)


def parse_year_month(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a work-history date into ``(year, month)``.

    Accepts ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` and ``MM/YYYY``. A bare year
    is taken as January. Returns None for blanks and anything unrecognised.

    Examples:
        >>> parse_year_month("2019-06-15")
        (2019, 6)
        >>> parse_year_month("03/2020")
        (2020, 3)
    """
    if value is None:
        return None

    cleaned = value.strip()
    for pattern in _YEAR_MONTH_PATTERNS:
        match = pattern.match(cleaned)
        if match:
            year = int(match.group("year"))
            month = int(match.groupdict().get("month") or 1)
            if 1 <= month <= 12:
                return year, month
            return None
    return None


def span_months(entry: WorkHistoryEntry, today: date) -> int:
    """Calendar-month span of one entry, never negative.

    A missing or unparseable start contributes nothing. A missing end or an
    ongoing marker counts up to ``today``; an unparseable end contributes
    nothing.
    """
    start = parse_year_month(entry.start_date)
    if start is None:
        return 0

    end_value = (entry.end_date or "").strip()
    if not end_value or end_value.lower() in ONGOING_MARKERS:
        end = (today.year, today.month)
    else:
        end = parse_year_month(end_value)
        if end is None:
            return 0

    months = (end[0] - start[0]) * 12 + (end[1] - start[1])
    return max(0, months)


def compute_experience_years(
    work_history: Iterable[WorkHistoryEntry], today: Optional[date] = None
) -> int:
    """Total experience in whole years, rounded half-up.

    Overlapping spans are summed, not merged.

    Example:
        >>> compute_experience_years(
        ...     [WorkHistoryEntry(start_date="2015-01", end_date="2020-07")],
        ...     today=date(2025, 1, 1),
        ... )
        6
    """
    if today is None:
        today = utc_today()

    total_months = sum(span_months(entry, today) for entry in work_history)
    return (total_months + 6) // 12
