from __future__ import annotations

from datetime import date

from edcore.cli.bundle import dumps
from edcore.cli.commands.sample_size import parse_floats_csv
from edcore.duration import estimate_duration


def cmd_duration(args) -> int:
    start = date.fromisoformat(args.start_date) if getattr(args, "start_date", None) else None
    est = estimate_duration(
        total_sample_size=int(args.total_sample_size),
        daily_traffic=float(args.daily_traffic),
        traffic_allocation=parse_floats_csv(args.allocation),
        buffer_days=int(args.buffer_days),
        start_date=start,
    )
    print(dumps(est))
    return 0
