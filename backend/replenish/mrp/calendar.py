"""
Planning calendar: contiguous time buckets for a plan horizon.
"""
from datetime import date, timedelta
from math import ceil
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from replenish.mrp.types import Bucket, BucketGranularity


def align_start(as_of: date, granularity: BucketGranularity) -> date:
    """Snap a date to the first day of its bucket (Monday for weeks)."""
    if granularity == BucketGranularity.WEEK:
        return as_of - timedelta(days=as_of.weekday())
    if granularity == BucketGranularity.MONTH:
        return as_of.replace(day=1)
    return as_of


def _step(granularity: BucketGranularity, n: int):
    if granularity == BucketGranularity.MONTH:
        return relativedelta(months=n)
    if granularity == BucketGranularity.WEEK:
        return timedelta(weeks=n)
    return timedelta(days=n)


def build_buckets(
    granularity: BucketGranularity,
    horizon_buckets: int,
    as_of: date,
    horizon_start: Optional[date] = None,
) -> List[Bucket]:
    if horizon_buckets < 1:
        raise ValueError("horizon_buckets must be at least 1")

    first = align_start(horizon_start or as_of, granularity)
    buckets: List[Bucket] = []
    for i in range(horizon_buckets):
        start = first + _step(granularity, i)
        next_start = first + _step(granularity, i + 1)
        buckets.append(Bucket(index=i, start=start, end=next_start - timedelta(days=1)))
    return buckets


def bucket_index_for(buckets: List[Bucket], day: date) -> Optional[int]:
    if not buckets or day < buckets[0].start or day > buckets[-1].end:
        return None
    for b in buckets:
        if b.start <= day <= b.end:
            return b.index
    return None


def lead_time_buckets(lead_time_days: int, granularity: BucketGranularity) -> int:
    """Lead time expressed in whole buckets, rounded up."""
    if lead_time_days <= 0:
        return 0
    return int(ceil(lead_time_days / granularity.days))
