from __future__ import annotations

from typing import Any, Dict, List

from edcore.cli.bundle import dumps
from edcore.design import calculate_sample_size
from edcore.duration import estimate_duration
from edcore.schema import ExperimentType, MdeType, MetricSpec, MetricType, StatisticalParams


def parse_floats_csv(s: str) -> list[float]:
    parts = [p.strip() for p in str(s).split(",") if p.strip()]
    return [float(p) for p in parts]


def _factors(levels_csv: str) -> List[Dict[str, Any]]:
    levels = [int(x) for x in parse_floats_csv(levels_csv)]
    return [{"name": f"Factor {chr(ord('A') + i)}", "levels": lv} for i, lv in enumerate(levels)]


# flag name -> key in the type-specific bag
_BAG_FLAGS = {
    "icc": "icc",
    "cluster_size": "cluster_size",
    "num_periods": "num_periods",
    "period_length": "period_length",
    "autocorrelation": "autocorrelation",
    "detect_interaction": "detect_interaction",
    "num_arms": "num_arms",
    "horizon": "horizon",
    "exploration_rate": "exploration_rate",
    "causal_method": "causal_method",
    "serial_correlation": "serial_correlation",
    "bandwidth": "bandwidth",
}


def type_specific_from_args(args) -> Dict[str, Any]:
    bag: Dict[str, Any] = {}
    for flag, key in _BAG_FLAGS.items():
        v = getattr(args, flag, None)
        if v is not None:
            bag[key] = v
    if getattr(args, "factors", None):
        bag["factors"] = _factors(args.factors)
    return bag


def metric_from_args(args) -> MetricSpec:
    return MetricSpec(
        name=str(getattr(args, "metric_name", None) or "primary"),
        type=MetricType(str(args.metric_type).upper()),
        baseline=float(args.baseline),
        variance=getattr(args, "variance", None),
        std_dev=getattr(args, "std_dev", None),
    )


def cmd_sample_size(args) -> int:
    allocation = parse_floats_csv(getattr(args, "allocation", "50,50"))
    params = StatisticalParams(
        alpha=float(args.alpha),
        power=float(args.power),
        mde=float(args.mde),
        mde_type=MdeType(args.mde_type),
        traffic_allocation=tuple(allocation),
        variants=int(args.variants),
        type_specific=type_specific_from_args(args),
    )
    experiment_type = ExperimentType(str(args.experiment_type).upper())

    result = calculate_sample_size(params, metric_from_args(args), experiment_type)

    out: Dict[str, Any] = {
        "experiment_type": experiment_type.value,
        "result": result.to_dict(),
    }
    if getattr(args, "daily_traffic", None) is not None:
        out["duration"] = estimate_duration(
            total_sample_size=result.total_sample_size,
            daily_traffic=float(args.daily_traffic),
            traffic_allocation=allocation,
            buffer_days=int(args.buffer_days),
        ).to_dict()

    print(dumps(out))
    return 0
