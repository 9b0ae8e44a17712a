"""
Window Splitter
Split a long query range into sub-ranges that fit in a single
CloudWatch get_metric_statistics call
"""

from datetime import datetime, timedelta
from typing import List

from sli_reporter.models import TimeWindow

# CloudWatch returns at most 1440 datapoints per request
DEFAULT_PAGE_LIMIT = 1441


def split_window(start: datetime, end: datetime, period: timedelta,
                 page_limit: int = DEFAULT_PAGE_LIMIT) -> List[TimeWindow]:
    """Split [start, end] into period-aligned windows of at most page_limit buckets.

    Window ends are computed with page_limit - 1 while window starts use
    page_limit, so consecutive windows are separated by one period. Existing
    reports depend on these boundaries; keep the arithmetic as is.
    """
    if period <= timedelta(0):
        raise ValueError(f"period must be positive, got {period}")
    if page_limit < 2:
        raise ValueError(f"page_limit must be at least 2, got {page_limit}")

    total_buckets = (end - start) // period
    window_count = total_buckets // page_limit + 1

    windows = []
    for i in range(window_count):
        window_start = start + period * page_limit * i
        try:
            window_end = start + period * (page_limit - 1) * (i + 1)
        except OverflowError:
            # past datetime.max, so past end as well
            window_end = end
        if window_end > end:
            window_end = end
        windows.append(TimeWindow(start=window_start, end=window_end))

    return windows
