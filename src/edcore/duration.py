from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional, Sequence

from edcore.errors import InvalidRangeError, ZeroTrafficError
from edcore.schema import DurationEstimate


def estimate_duration(
    total_sample_size: int,
    daily_traffic: float,
    traffic_allocation: Sequence[float],
    buffer_days: int = 0,
    start_date: Optional[date] = None,
) -> DurationEstimate:
    """
    Convert a total sample size into calendar days and weeks.

    Effective traffic is `daily_traffic` scaled by the share of traffic in the
    experiment (sum of the allocation, in percent). `buffer_days` covers
    ramp-up and cool-down.
    """
    if not daily_traffic > 0:
        raise ZeroTrafficError(f"daily_traffic must be positive, got {daily_traffic!r}.")
    if buffer_days < 0:
        raise InvalidRangeError("buffer_days must be >= 0.")
    if total_sample_size < 0:
        raise InvalidRangeError("total_sample_size must be >= 0.")

    share = float(sum(traffic_allocation)) / 100.0
    effective = daily_traffic * share
    if not effective > 0:
        raise ZeroTrafficError("Traffic allocation sends no traffic to the experiment.")

    days = int(math.ceil(total_sample_size / effective)) + int(buffer_days)
    weeks = int(math.ceil(days / 7))

    assumptions = [
        f"Daily traffic: {daily_traffic:,.0f} users",
        f"Traffic allocation: {'/'.join(f'{a:g}' for a in traffic_allocation)}",
        f"Effective daily traffic: {effective:,.0f} users",
    ]
    if buffer_days > 0:
        assumptions.append(f"Includes {buffer_days} buffer days")

    end_date = start_date + timedelta(days=days) if start_date is not None else None
    return DurationEstimate(
        days=days,
        weeks=weeks,
        traffic_per_day=effective,
        assumptions=tuple(assumptions),
        start_date=start_date,
        end_date=end_date,
    )
