"""
Appointment analytics for the dashboard charts.

AnalyticsDateRangeEngine turns a window size and a count source into a
gap-free series of (date, label, count) starting at "today". When the count
source fails, it returns a fixed 7-day all-zero fallback instead of raising,
so the dashboard still renders.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Protocol, Tuple

from dashboard.utils.time_utils import (
    LABEL_MODES,
    LABEL_WEEKLY,
    date_window,
    day_label,
)

logger = logging.getLogger(__name__)

FALLBACK_WINDOW_DAYS = 7


class InvalidWindowSize(ValueError):
    """Window size is not a positive integer."""


class MalformedCountData(Exception):
    """Count source returned something that is not a non-negative integer count."""


class CountSource(Protocol):
    def counts_between(self, start: date, end: date) -> Mapping[date, int]:
        """Appointment counts per date for start..end inclusive; dates without appointments may be absent."""
        ...


@dataclass(frozen=True)
class AnalyticsResult:
    window: Tuple[date, ...]
    labels: Tuple[str, ...]
    counts: Tuple[int, ...]
    is_fallback: bool = False
    label_mode: str = LABEL_WEEKLY

    def __post_init__(self):
        if not (len(self.window) == len(self.labels) == len(self.counts)):
            raise ValueError(
                "window, labels and counts must have equal length "
                f"({len(self.window)}, {len(self.labels)}, {len(self.counts)})"
            )

    def as_dict(self):
        return {
            "dates": [d.isoformat() for d in self.window],
            "labels": list(self.labels),
            "counts": list(self.counts),
            "is_fallback": self.is_fallback,
            "label_mode": self.label_mode,
        }


def _check_count(d: date, value) -> int:
    if value is None:
        return 0
    # bool is an int subclass but never a count
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedCountData(f"count for {d} is {value!r}, expected int")
    if value < 0:
        raise MalformedCountData(f"count for {d} is negative ({value})")
    return value


def build_result(window, counts, label_mode=LABEL_WEEKLY, is_fallback=False) -> AnalyticsResult:
    return AnalyticsResult(
        window=tuple(window),
        labels=tuple(day_label(d, label_mode) for d in window),
        counts=tuple(counts),
        is_fallback=is_fallback,
        label_mode=label_mode,
    )


def fallback_result(today: date) -> AnalyticsResult:
    """Fixed degraded view: 7 days from today, weekday labels, all zeros."""
    window = date_window(today, FALLBACK_WINDOW_DAYS)
    return build_result(window, [0] * FALLBACK_WINDOW_DAYS, LABEL_WEEKLY, is_fallback=True)


class AnalyticsDateRangeEngine:
    """
    Stateless apart from its read-only count source; safe to share
    between concurrent requests.
    """

    def __init__(self, count_source: CountSource):
        self.count_source = count_source

    def get_appointment_counts(self, window_size_days: int, today: date,
                               label_mode: str = LABEL_WEEKLY) -> AnalyticsResult:
        if (isinstance(window_size_days, bool) or not isinstance(window_size_days, int)
                or window_size_days <= 0):
            raise InvalidWindowSize(f"window size must be a positive integer, got {window_size_days!r}")
        if label_mode not in LABEL_MODES:
            raise ValueError(f"Unknown label mode {label_mode!r}; expected one of {LABEL_MODES}")

        window = date_window(today, window_size_days)

        try:
            by_date = self.count_source.counts_between(window[0], window[-1])
            counts = [_check_count(d, by_date.get(d)) for d in window]
        except Exception:
            logger.warning(
                "Appointment count lookup failed for %s..%s; serving fallback analytics",
                window[0], window[-1], exc_info=True,
            )
            return fallback_result(today)

        return build_result(window, counts, label_mode)
