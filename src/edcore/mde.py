"""
Minimal detectable effect (MDE) for a fixed sample size.

This is the reverse design question: with `n` units per variant, what is the
smallest effect we can detect with the desired power?

For every metric family the closed form is

    mde = (z_alpha + z_beta) * sqrt(2 * var / n)

where `var` is the per-unit variance at the baseline:
- binary: p * (1 - p);
- continuous: the supplied variance, else (0.1 * baseline)^2;
- count: lambda (Poisson).

`sample_size_for_target_mde` solves the same equation for `n`, so the two
functions compose to the identity up to rounding of `n`.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import pandas as pd

from edcore.errors import DegenerateEffectError, InvalidRangeError, ZeroTrafficError
from edcore.power import _require_n, _z_alpha, _z_beta, continuous_variance, resolve_effect_size
from edcore.schema import FeasibilityResult, MdeType, MDEResult, MetricType


def _unit_variance(metric_type: MetricType | str, baseline: float, variance: Optional[float]) -> float:
    mtype = MetricType(metric_type)
    if mtype == MetricType.BINARY:
        if not 0 < baseline < 1:
            raise InvalidRangeError("baseline rate must be in (0, 1).")
        return baseline * (1 - baseline)
    if mtype == MetricType.CONTINUOUS:
        var = continuous_variance(baseline, variance)
        if not var > 0:
            raise InvalidRangeError("variance must be positive.")
        return var
    if not baseline > 0:
        raise InvalidRangeError("baseline rate (lambda) must be positive.")
    return float(baseline)


def mde_from_n(
    metric_type: MetricType | str,
    n: float,
    baseline: float,
    alpha: float = 0.05,
    power: float = 0.8,
    variance: Optional[float] = None,
) -> float:
    """Absolute MDE for `n` units per variant."""
    _require_n(n)
    var = _unit_variance(metric_type, baseline, variance)
    return abs((_z_alpha(alpha) + _z_beta(power)) * math.sqrt(2.0 * var / n))


def calculate_mde(
    sample_size: int,
    alpha: float,
    power: float,
    baseline: float,
    metric_type: MetricType | str,
    variance: Optional[float] = None,
) -> MDEResult:
    """
    Compute the MDE for a fixed sample size per variant.

    Parameters
    ----------
    sample_size : int
        Units per variant.
    alpha : float
        Significance level.
    power : float
        Desired power.
    baseline : float
        Baseline rate or mean of the metric.
    metric_type : MetricType
        Metric family.
    variance : float, optional
        Per-unit variance for continuous metrics.

    Returns
    -------
    MDEResult
        Absolute MDE and relative MDE (percent of baseline).
    """
    if baseline == 0:
        raise InvalidRangeError("baseline must be non-zero to express a relative MDE.")
    mde_abs = mde_from_n(metric_type, sample_size, baseline, alpha=alpha, power=power, variance=variance)
    return MDEResult(
        mde_absolute=mde_abs,
        mde_relative=mde_abs / baseline * 100.0,
        sample_size=int(sample_size),
        power=power,
        alpha=alpha,
    )


def mde_for_power_levels(
    sample_size: int,
    alpha: float,
    power_levels: Sequence[float],
    baseline: float,
    metric_type: MetricType | str,
    variance: Optional[float] = None,
) -> pd.DataFrame:
    rows = []
    for pwr in power_levels:
        res = calculate_mde(sample_size, alpha, pwr, baseline, metric_type, variance=variance)
        rows.append({"power": pwr, "mde_absolute": res.mde_absolute, "mde_relative": res.mde_relative})
    return pd.DataFrame(rows, columns=["power", "mde_absolute", "mde_relative"])


def mde_sensitivity(
    sample_sizes: Sequence[int],
    alpha: float,
    power: float,
    baseline: float,
    metric_type: MetricType | str,
    variance: Optional[float] = None,
) -> pd.DataFrame:
    """Absolute MDE for each sample size (columns `sample_size`, `mde`)."""
    rows = [
        {"sample_size": int(n), "mde": mde_from_n(metric_type, n, baseline, alpha=alpha, power=power, variance=variance)}
        for n in sample_sizes
    ]
    return pd.DataFrame(rows, columns=["sample_size", "mde"])


def sample_size_for_target_mde(
    target_mde: float,
    mde_type: MdeType | str,
    alpha: float,
    power: float,
    baseline: float,
    metric_type: MetricType | str,
    variance: Optional[float] = None,
) -> int:
    """Units per variant needed to reach `target_mde`, rounded up."""
    mde_abs = resolve_effect_size(baseline, target_mde, mde_type)
    if not math.isfinite(mde_abs) or mde_abs == 0:
        raise DegenerateEffectError("Target MDE resolves to zero.")
    var = _unit_variance(metric_type, baseline, variance)
    z = _z_alpha(alpha) + _z_beta(power)
    return int(math.ceil(2.0 * z ** 2 * var / mde_abs ** 2))


def validate_mde_feasibility(
    target_mde: float,
    mde_type: MdeType | str,
    alpha: float,
    power: float,
    baseline: float,
    metric_type: MetricType | str,
    daily_traffic: float,
    max_duration_days: int,
    variance: Optional[float] = None,
) -> FeasibilityResult:
    """
    Check whether `target_mde` is reachable within `max_duration_days`.

    When it is not, `achievable_mde` reports what the available traffic can
    detect, in the same units as `mde_type`.
    """
    if not daily_traffic > 0:
        raise ZeroTrafficError("daily_traffic must be positive.")
    if not max_duration_days > 0:
        raise InvalidRangeError("max_duration_days must be positive.")

    mde_type = MdeType(mde_type)
    required = sample_size_for_target_mde(target_mde, mde_type, alpha, power, baseline, metric_type, variance)
    available = daily_traffic * max_duration_days
    required_days = int(math.ceil(required / daily_traffic))

    if required <= available:
        return FeasibilityResult(
            feasible=True,
            required_sample_size=required,
            required_days=required_days,
            message=f"Target MDE is achievable in {required_days} days with available traffic.",
        )

    achievable = calculate_mde(int(available), alpha, power, baseline, metric_type, variance=variance)
    if mde_type == MdeType.RELATIVE:
        value, shown = achievable.mde_relative, f"{achievable.mde_relative:.2f}%"
    else:
        value, shown = achievable.mde_absolute, f"{achievable.mde_absolute:.4f}"
    return FeasibilityResult(
        feasible=False,
        required_sample_size=required,
        required_days=required_days,
        achievable_mde=value,
        message=(
            f"Target MDE requires {required_days} days but only {max_duration_days} days available. "
            f"With available traffic, achievable MDE is {shown}."
        ),
    )
