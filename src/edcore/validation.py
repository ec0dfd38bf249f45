from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional, Sequence

from edcore.errors import (
    DesignError,
    InvalidAllocationError,
    InvalidRangeError,
)
from edcore.schema import (
    BanditParams,
    CausalMethod,
    CausalParams,
    ClusterParams,
    DesignParams,
    ExperimentConfig,
    ExperimentType,
    Factor,
    FactorialParams,
    MdeType,
    MetricSpec,
    MetricType,
    StatisticalParams,
    SwitchbackParams,
)

ALLOCATION_TOLERANCE = 1e-4


def _is_finite_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def require_open_unit(name: str, value: Any) -> None:
    """Raise unless 0 < value < 1."""
    if not _is_finite_number(value) or not 0 < value < 1:
        raise InvalidRangeError(f"{name} must be in (0, 1), got {value!r}.")


def require_positive(name: str, value: Any) -> None:
    if not _is_finite_number(value) or value <= 0:
        raise InvalidRangeError(f"{name} must be positive, got {value!r}.")


def require_in_range(name: str, value: Any, lo: float, hi: float, hi_inclusive: bool = False) -> None:
    """Raise unless lo <= value < hi (or <= hi when hi_inclusive)."""
    ok = _is_finite_number(value) and lo <= value and (value <= hi if hi_inclusive else value < hi)
    if not ok:
        bracket = "]" if hi_inclusive else ")"
        raise InvalidRangeError(f"{name} must be in [{lo}, {hi}{bracket}, got {value!r}.")


def require_int_at_least(name: str, value: Any, minimum: int) -> None:
    if not _is_finite_number(value) or int(value) != value or value < minimum:
        raise InvalidRangeError(f"{name} must be an integer >= {minimum}, got {value!r}.")


def validate_allocation(allocation: Sequence[float], variants: int) -> None:
    """
    Check the traffic split for the first `variants` arms.

    Entries beyond the variant count are ignored.
    """
    if not isinstance(allocation, (list, tuple)):
        raise InvalidAllocationError(f"traffic_allocation must be a list of percentages, got {allocation!r}.")
    if len(allocation) < variants:
        raise InvalidAllocationError(
            f"traffic_allocation has {len(allocation)} entries but {variants} variants are configured."
        )
    relevant = list(allocation)[:variants]
    bad = [a for a in relevant if not _is_finite_number(a) or a <= 0 or a > 100]
    if bad:
        raise InvalidAllocationError(f"traffic_allocation entries must be in (0, 100], got {bad}.")
    total = float(sum(relevant))
    if abs(total - 100.0) > ALLOCATION_TOLERANCE:
        raise InvalidAllocationError(f"traffic_allocation must sum to 100, got {total:g}.")


def validate_params(params: StatisticalParams) -> None:
    require_open_unit("alpha", params.alpha)
    require_open_unit("power", params.power)
    # zero is a degenerate effect, reported when the effect is resolved
    if not _is_finite_number(params.mde):
        raise InvalidRangeError(f"mde must be a finite number, got {params.mde!r}.")
    try:
        MdeType(params.mde_type)
    except ValueError:
        raise InvalidRangeError(f"mde_type must be 'relative' or 'absolute', got {params.mde_type!r}.") from None
    require_int_at_least("variants", params.variants, 2)
    validate_allocation(params.traffic_allocation, int(params.variants))


def validate_metric(metric: MetricSpec) -> None:
    mtype = MetricType(metric.type)
    if mtype == MetricType.BINARY:
        require_open_unit(f"baseline rate of {metric.name!r}", metric.baseline)
    elif mtype == MetricType.CONTINUOUS:
        if not _is_finite_number(metric.baseline) or metric.baseline == 0:
            raise InvalidRangeError(f"baseline of {metric.name!r} must be a finite, non-zero number.")
        if metric.variance is not None:
            require_positive(f"variance of {metric.name!r}", metric.variance)
        if metric.std_dev is not None:
            require_positive(f"std_dev of {metric.name!r}", metric.std_dev)
    else:
        require_positive(f"baseline rate (lambda) of {metric.name!r}", metric.baseline)


# Type-specific bag -> typed params

def _pick(bag: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    # accept both snake_case and the camelCase keys used by the wizard/assistant
    for k in keys:
        if k in bag and bag[k] is not None:
            return bag[k]
    return default


def _parse_cluster(bag: Mapping[str, Any]) -> ClusterParams:
    icc = _pick(bag, "icc")
    size = _pick(bag, "cluster_size", "clusterSize")
    if icc is not None:
        require_in_range("icc", icc, 0.0, 1.0, hi_inclusive=True)
    if size is not None:
        require_int_at_least("cluster_size", size, 2)
        size = int(size)
    return ClusterParams(icc=None if icc is None else float(icc), cluster_size=size)


def _parse_switchback(bag: Mapping[str, Any]) -> SwitchbackParams:
    periods = _pick(bag, "num_periods", "numPeriods")
    length = _pick(bag, "period_length", "periodLength")
    rho = _pick(bag, "autocorrelation")
    if periods is not None:
        require_int_at_least("num_periods", periods, 1)
        periods = int(periods)
    if length is not None:
        require_positive("period_length", length)
        length = float(length)
    if rho is not None:
        require_in_range("autocorrelation", rho, 0.0, 1.0)
        rho = float(rho)
    return SwitchbackParams(num_periods=periods, period_length=length, autocorrelation=rho)


def _parse_factorial(bag: Mapping[str, Any]) -> FactorialParams:
    raw = _pick(bag, "factors", default=[]) or []
    if not isinstance(raw, (list, tuple)):
        raise InvalidRangeError(f"factors must be a list of {{name, levels}} mappings, got {raw!r}.")
    factors: List[Factor] = []
    for i, f in enumerate(raw):
        if isinstance(f, Factor):
            name, levels = f.name, f.levels
        elif isinstance(f, Mapping):
            name = str(f.get("name", f"Factor {i + 1}"))
            levels = f.get("levels")
        else:
            raise InvalidRangeError(f"factor #{i + 1} must be a mapping with name/levels, got {f!r}.")
        require_int_at_least(f"levels of factor {name!r}", levels, 2)
        factors.append(Factor(name=name, levels=int(levels)))
    detect = bool(_pick(bag, "detect_interaction", "detectInteraction", default=False))
    return FactorialParams(factors=tuple(factors), detect_interaction=detect)


def _parse_bandit(bag: Mapping[str, Any]) -> BanditParams:
    defaults = BanditParams()
    arms = _pick(bag, "num_arms", "numArms", default=defaults.num_arms)
    horizon = _pick(bag, "horizon", default=defaults.horizon)
    eps = _pick(bag, "exploration_rate", "explorationRate", default=defaults.exploration_rate)
    require_int_at_least("num_arms", arms, 2)
    require_int_at_least("horizon", horizon, 1)
    require_in_range("exploration_rate", eps, 0.0, 1.0, hi_inclusive=True)
    if eps == 0:
        raise InvalidRangeError("exploration_rate must be > 0.")
    return BanditParams(num_arms=int(arms), horizon=int(horizon), exploration_rate=float(eps))


def _parse_causal(bag: Mapping[str, Any]) -> CausalParams:
    raw_method = _pick(bag, "causal_method", "causalMethod", "method", default=CausalMethod.DID.value)
    try:
        method = CausalMethod(str(getattr(raw_method, "value", raw_method)).strip().lower())
    except ValueError:
        allowed = [m.value for m in CausalMethod]
        raise InvalidRangeError(f"causal_method must be one of {allowed}, got {raw_method!r}.") from None

    rho = _pick(bag, "serial_correlation", "serialCorrelation")
    bandwidth = _pick(bag, "bandwidth")
    if method == CausalMethod.DID and rho is not None:
        require_in_range("serial_correlation", rho, 0.0, 1.0)
        rho = float(rho)
    if method == CausalMethod.RDD and bandwidth is not None:
        require_positive("bandwidth", bandwidth)
        bandwidth = float(bandwidth)
    return CausalParams(
        method=method,
        serial_correlation=rho if method == CausalMethod.DID else None,
        bandwidth=bandwidth if method == CausalMethod.RDD else None,
    )


_PARSERS = {
    ExperimentType.CLUSTER: _parse_cluster,
    ExperimentType.SWITCHBACK: _parse_switchback,
    ExperimentType.FACTORIAL: _parse_factorial,
    ExperimentType.MAB: _parse_bandit,
    ExperimentType.CAUSAL_INFERENCE: _parse_causal,
}


def parse_design_params(experiment_type: ExperimentType, bag: Optional[Mapping[str, Any]]) -> Optional[DesignParams]:
    """
    Build the typed params for the active experiment type.

    Keys that belong to other experiment types are ignored, not validated.
    Returns None for AB_TEST.
    """
    parser = _PARSERS.get(ExperimentType(experiment_type))
    if parser is None:
        return None
    if bag is not None and not isinstance(bag, Mapping):
        raise InvalidRangeError(f"type_specific must be a mapping, got {bag!r}.")
    return parser(bag or {})


def collect_errors(
    params: StatisticalParams,
    metric: Optional[MetricSpec] = None,
    experiment_type: Optional[ExperimentType] = None,
) -> List[DesignError]:
    """Run every check and return all problems found (empty list when valid)."""
    errors: List[DesignError] = []
    checks = [lambda: validate_params(params)]
    if metric is not None:
        checks.append(lambda: validate_metric(metric))
    if experiment_type is not None:
        checks.append(lambda: parse_design_params(experiment_type, params.type_specific))

    for check in checks:
        try:
            check()
        except DesignError as e:
            errors.append(e)
    return errors


def collect_config_errors(config: ExperimentConfig) -> List[str]:
    out: List[str] = []
    try:
        metric = config.primary_metric()
    except ValueError as e:
        out.append(str(e))
        metric = None
    out.extend(str(e) for e in collect_errors(config.params, metric, config.experiment_type))
    if config.daily_traffic is not None and (not _is_finite_number(config.daily_traffic) or config.daily_traffic <= 0):
        out.append(f"daily_traffic must be positive, got {config.daily_traffic!r}.")
    return out

