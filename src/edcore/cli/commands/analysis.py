from __future__ import annotations

from edcore.cli.bundle import dumps
from edcore.mde import calculate_mde
from edcore.power import calculate_power, resolve_effect_size
from edcore.schema import MdeType, MetricType


def cmd_power(args) -> int:
    metric_type = MetricType(str(args.metric_type).upper())
    effect = resolve_effect_size(float(args.baseline), float(args.mde), MdeType(args.mde_type))
    res = calculate_power(
        sample_size=int(args.sample_size),
        alpha=float(args.alpha),
        effect_size=effect,
        baseline=float(args.baseline),
        metric_type=metric_type,
        variance=getattr(args, "variance", None),
    )
    print(dumps(res))
    return 0


def cmd_mde(args) -> int:
    res = calculate_mde(
        sample_size=int(args.sample_size),
        alpha=float(args.alpha),
        power=float(args.power),
        baseline=float(args.baseline),
        metric_type=MetricType(str(args.metric_type).upper()),
        variance=getattr(args, "variance", None),
    )
    print(dumps(res))
    return 0
