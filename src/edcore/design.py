"""
High-level experiment design: choose an MDE, get the required sample size.

Flow of `calculate_sample_size`:

    MDE + baseline       -> absolute effect          (edcore.power)
    effect + metric type -> base n per variant       (edcore.power)
    traffic split        -> unequal/multi-arm inflation (edcore.adjusters)
    experiment type      -> one design adjuster      (edcore.adjusters)
    packaging            -> rounded sizes, warnings  (here)

The engine never mutates its inputs and keeps no state between calls: each
call returns a fresh `SampleSizeResult`.
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

from edcore.adjusters import adjust_for_allocation, adjust_for_design
from edcore.defaults import MAX_STANDARD_ALPHA, MIN_RECOMMENDED_POWER, MIN_SAMPLE_SIZE, SMALL_RELATIVE_MDE
from edcore.duration import estimate_duration
from edcore.power import base_sample_size, continuous_variance, resolve_effect_size
from edcore.schema import (
    DurationEstimate,
    ExperimentConfig,
    ExperimentType,
    MdeType,
    MetricSpec,
    MetricType,
    SampleSizeResult,
    StatisticalParams,
)
from edcore.validation import parse_design_params, validate_metric, validate_params


def _describe_mde(params: StatisticalParams, effect: float, digits: int) -> str:
    if MdeType(params.mde_type) == MdeType.RELATIVE:
        return f"Minimum detectable effect: {params.mde:g}% (relative)"
    return f"Minimum detectable effect: {effect:.{digits}f} (absolute)"


def _base_n(params: StatisticalParams, metric: MetricSpec, effect: float) -> Tuple[float, List[str]]:
    mtype = MetricType(metric.type)
    assumptions: List[str] = []
    variance: Optional[float] = None

    if mtype == MetricType.BINARY:
        assumptions.append(f"Baseline conversion rate: {metric.baseline * 100:.2f}%")
        assumptions.append(_describe_mde(params, effect, 4))
    elif mtype == MetricType.CONTINUOUS:
        variance = metric.resolved_variance()
        assumptions.append(f"Baseline mean: {metric.baseline:.2f}")
        if variance is None:
            variance = continuous_variance(metric.baseline)
            assumptions.append(
                f"Variance not supplied; assuming a 10% coefficient of variation "
                f"(variance = (0.1 x baseline)^2 = {variance:.2f})"
            )
        else:
            assumptions.append(f"Variance: {variance:.2f}")
        assumptions.append(_describe_mde(params, effect, 2))
    else:
        assumptions.append(f"Baseline rate (lambda): {metric.baseline:.2f}")
        assumptions.append("Count metric modelled as Poisson (variance equals mean)")
        assumptions.append(_describe_mde(params, effect, 2))

    n = base_sample_size(
        mtype,
        metric.baseline,
        effect,
        alpha=params.alpha,
        power=params.power,
        variance=variance,
    )
    return n, assumptions


def _general_warnings(params: StatisticalParams, per_variant: int) -> List[str]:
    out: List[str] = []
    if per_variant < MIN_SAMPLE_SIZE:
        out.append("Sample size is very small. Results may be unreliable.")
    if MdeType(params.mde_type) == MdeType.RELATIVE and params.mde < SMALL_RELATIVE_MDE:
        out.append("Very small MDE requires large sample sizes and long experiment duration.")
    if params.alpha > MAX_STANDARD_ALPHA:
        out.append("Significance level is higher than standard 0.05. Risk of false positives increases.")
    if params.power < MIN_RECOMMENDED_POWER:
        out.append("Statistical power is below recommended 0.8. Risk of false negatives increases.")
    return out


def calculate_sample_size(
    params: StatisticalParams,
    metric: MetricSpec,
    experiment_type: ExperimentType = ExperimentType.AB_TEST,
) -> SampleSizeResult:
    """
    Size an experiment for its primary metric.

    Parameters
    ----------
    params : StatisticalParams
        alpha, power, MDE, traffic split, variant count and the
        type-specific bag for the active design.
    metric : MetricSpec
        Primary metric; its type selects the variance model.
    experiment_type : ExperimentType, optional
        Design type selecting the adjuster, by default AB_TEST.

    Returns
    -------
    SampleSizeResult
        Rounded sizes, nominal power/MDE, assumptions, warnings and the
        design-specific payload.

    Raises
    ------
    DesignError
        On out-of-range input, an invalid traffic split, or a zero effect.
        Bandit designs never size from the effect, so a zero or out-of-range
        effect does not reject them.
    """
    experiment_type = ExperimentType(experiment_type)
    validate_params(params)
    validate_metric(metric)
    design_params = parse_design_params(experiment_type, params.type_specific)

    effect = resolve_effect_size(metric.baseline, params.mde, params.mde_type)
    if experiment_type == ExperimentType.MAB:
        # bandit budgets come from horizon and epsilon, not from the effect size
        n, assumptions = 0.0, []
    else:
        n, assumptions = _base_n(params, metric, effect)

    n, alloc_assumptions, warnings = adjust_for_allocation(n, params.traffic_allocation, params.variants)
    assumptions.extend(alloc_assumptions)

    adj = adjust_for_design(experiment_type, n, params.variants, design_params)
    assumptions.extend(adj.assumptions)
    warnings.extend(adj.warnings)

    if MdeType(params.mde_type) == MdeType.RELATIVE:
        calculated_mde = float(params.mde)
    else:
        calculated_mde = effect / metric.baseline * 100.0

    per_variant = int(math.ceil(adj.n))
    if adj.total is not None:
        # factorial / bandit designs report their own totals
        return SampleSizeResult(
            sample_size_per_variant=per_variant,
            total_sample_size=int(adj.total),
            calculated_power=params.power,
            calculated_mde=calculated_mde,
            assumptions=tuple(assumptions),
            warnings=tuple(warnings),
            details=adj.details,
        )

    warnings.extend(_general_warnings(params, per_variant))
    return SampleSizeResult(
        sample_size_per_variant=per_variant,
        total_sample_size=per_variant * int(params.variants),
        calculated_power=params.power,
        calculated_mde=calculated_mde,
        assumptions=tuple(assumptions),
        warnings=tuple(warnings),
        details=adj.details,
    )


def design_experiment(config: ExperimentConfig) -> Tuple[SampleSizeResult, Optional[DurationEstimate]]:
    """Size the experiment described by `config`; add a duration when daily traffic is known."""
    result = calculate_sample_size(config.params, config.primary_metric(), config.experiment_type)

    duration: Optional[DurationEstimate] = None
    if config.daily_traffic is not None:
        duration = estimate_duration(
            total_sample_size=result.total_sample_size,
            daily_traffic=config.daily_traffic,
            traffic_allocation=config.params.traffic_allocation,
            buffer_days=config.buffer_days,
            start_date=config.start_date,
        )
    return result, duration
