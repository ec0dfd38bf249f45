"""
Sample size and power for two-sample comparisons.

Three metric families share one normal-approximation skeleton:

- binary metrics (conversion, retention): pooled two-proportion variance;
- continuous metrics (revenue, order value): supplied variance, or an
  assumed 10% coefficient of variation when none is known;
- count metrics (purchases per user): Poisson, variance equal to the mean.

The sample-size formulas here and the power/SE formulas below are exact
inverses of each other, so sizing a test and then asking for its power
returns the target power.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
import pandas as pd
from scipy.stats import norm

from edcore.errors import DegenerateEffectError, InvalidRangeError
from edcore.schema import MdeType, MetricType, PowerAnalysisResult

# Assumed coefficient of variation when a continuous metric has no variance.
DEFAULT_CV = 0.1


def _z_alpha(alpha: float) -> float:
    """Return the two-sided critical z-value for `alpha`."""
    if not 0 < alpha < 1:
        raise InvalidRangeError("alpha must be in (0, 1).")
    return float(norm.ppf(1 - alpha / 2.0))


def _z_beta(power: float) -> float:
    """Return z-value corresponding to the desired power (1 - beta)."""
    if not 0 < power < 1:
        raise InvalidRangeError("power must be in (0, 1).")
    return float(norm.ppf(power))


def _require_effect(effect: float) -> float:
    if not math.isfinite(effect) or effect == 0:
        raise DegenerateEffectError(
            "Effect size resolves to zero: control and treatment are identical, "
            "so no sample size can detect the difference."
        )
    return abs(effect)


def _require_n(n: float) -> None:
    if not n > 0:
        raise InvalidRangeError(f"sample size must be positive, got {n!r}.")


def resolve_effect_size(baseline: float, mde: float, mde_type: MdeType | str) -> float:
    """
    Convert an MDE setting into an absolute effect.

    Relative MDEs are percentages of the baseline (mde=10 on a 5% baseline is
    0.005). A zero or negative baseline is passed through unchanged.
    """
    if MdeType(mde_type) == MdeType.RELATIVE:
        return baseline * (mde / 100.0)
    return mde


def default_variance(baseline: float) -> float:
    """Variance implied by a 10% coefficient of variation: (0.1 * baseline)^2."""
    return (DEFAULT_CV * baseline) ** 2


def continuous_variance(baseline: float, variance: Optional[float] = None) -> float:
    if variance is not None:
        return float(variance)
    return default_variance(baseline)


# Per-family sample size (per variant, unrounded)

def sample_size_proportions(p1: float, p2: float, alpha: float = 0.05, power: float = 0.8) -> float:
    """
    Required units per variant for a two-sided test of two proportions.

    Parameters
    ----------
    p1 : float
        Control proportion (0 < p1 < 1).
    p2 : float
        Treatment proportion (0 < p2 < 1).
    alpha : float, optional
        Significance level, by default 0.05.
    power : float, optional
        Desired power (1 - beta), by default 0.8.

    Returns
    -------
    float
        Unrounded per-variant sample size; callers round up.

    Raises
    ------
    DegenerateEffectError
        If p1 == p2.
    """
    if not 0 < p1 < 1:
        raise InvalidRangeError("control proportion must be in (0, 1).")
    if not 0 < p2 < 1:
        raise InvalidRangeError(
            "treatment proportion must be in (0, 1). "
            "Check that your minimal detectable effect is realistic."
        )
    delta = _require_effect(p2 - p1)
    z_a = _z_alpha(alpha)
    z_b = _z_beta(power)

    # Pooled proportion under the alternative (simple approximation).
    p_bar = (p1 + p2) / 2.0
    return 2.0 * (z_a + z_b) ** 2 * p_bar * (1 - p_bar) / delta ** 2


def sample_size_means(effect: float, variance: float, alpha: float = 0.05, power: float = 0.8) -> float:
    """
    Required units per variant for a two-sided test on means.

    Assumes equal group sizes and a common variance in both groups.
    """
    if not variance > 0:
        raise InvalidRangeError("variance must be positive.")
    delta = _require_effect(effect)
    z_a = _z_alpha(alpha)
    z_b = _z_beta(power)
    return 2.0 * (z_a + z_b) ** 2 * variance / delta ** 2


def sample_size_counts(lam: float, effect: float, alpha: float = 0.05, power: float = 0.8) -> float:
    """Required units per variant for Poisson counts (variance = mean = lam)."""
    if not lam > 0:
        raise InvalidRangeError("baseline rate (lambda) must be positive.")
    delta = _require_effect(effect)
    z_a = _z_alpha(alpha)
    z_b = _z_beta(power)
    return 2.0 * (z_a + z_b) ** 2 * lam / delta ** 2


def base_sample_size(
    metric_type: MetricType | str,
    baseline: float,
    effect: float,
    alpha: float = 0.05,
    power: float = 0.8,
    variance: Optional[float] = None,
) -> float:
    """Dispatch to the variance model implied by `metric_type`."""
    mtype = MetricType(metric_type)
    if mtype == MetricType.BINARY:
        return sample_size_proportions(baseline, baseline + effect, alpha=alpha, power=power)
    if mtype == MetricType.CONTINUOUS:
        return sample_size_means(effect, continuous_variance(baseline, variance), alpha=alpha, power=power)
    return sample_size_counts(baseline, effect, alpha=alpha, power=power)


# Inverse direction: fixed n -> power

def standard_error(
    metric_type: MetricType | str,
    n: float,
    baseline: float,
    effect: float,
    variance: Optional[float] = None,
) -> float:
    """
    Standard error of the difference between two arms of `n` units each.

    Uses the same variance as the sample-size formula of each family, so the
    two directions invert exactly.
    """
    _require_n(n)
    mtype = MetricType(metric_type)
    if mtype == MetricType.BINARY:
        p2 = baseline + effect
        if not (0 < baseline < 1 and 0 < p2 < 1):
            raise InvalidRangeError("baseline and baseline + effect must be in (0, 1).")
        p_bar = (baseline + p2) / 2.0
        return math.sqrt(2.0 * p_bar * (1 - p_bar) / n)
    if mtype == MetricType.CONTINUOUS:
        var = continuous_variance(baseline, variance)
        if not var > 0:
            raise InvalidRangeError("variance must be positive.")
        return math.sqrt(2.0 * var / n)
    if not baseline > 0:
        raise InvalidRangeError("baseline rate (lambda) must be positive.")
    return math.sqrt(2.0 * baseline / n)


def power_from_n(
    metric_type: MetricType | str,
    n: float,
    baseline: float,
    effect: float,
    alpha: float = 0.05,
    variance: Optional[float] = None,
) -> float:
    """
    Achieved power for `n` units per variant and a true absolute `effect`.

    power = 1 - Phi(z_alpha - effect / SE), clamped to [0, 1].
    """
    delta = _require_effect(effect)
    z_a = _z_alpha(alpha)
    se = standard_error(metric_type, n, baseline, effect, variance)
    ncp = delta / se
    return float(np.clip(1 - norm.cdf(z_a - ncp), 0.0, 1.0))


def calculate_power(
    sample_size: int,
    alpha: float,
    effect_size: float,
    baseline: float,
    metric_type: MetricType | str,
    variance: Optional[float] = None,
) -> PowerAnalysisResult:
    pwr = power_from_n(metric_type, sample_size, baseline, effect_size, alpha=alpha, variance=variance)
    return PowerAnalysisResult(power=pwr, sample_size=int(sample_size), effect_size=effect_size, alpha=alpha)


def power_curve(
    min_sample_size: int,
    max_sample_size: int,
    steps: int,
    alpha: float,
    effect_size: float,
    baseline: float,
    metric_type: MetricType | str,
    variance: Optional[float] = None,
) -> pd.DataFrame:
    """
    Power at `steps + 1` evenly spaced sample sizes from min to max (inclusive).

    Returns a table with columns `sample_size` and `power`.
    """
    if steps <= 0:
        raise InvalidRangeError("steps must be > 0.")
    _require_n(min_sample_size)
    if max_sample_size < min_sample_size:
        raise InvalidRangeError("max_sample_size must be >= min_sample_size.")

    step = (max_sample_size - min_sample_size) / steps
    rows = []
    for i in range(steps + 1):
        n = int(round(min_sample_size + i * step))
        rows.append({
            "sample_size": n,
            "power": power_from_n(metric_type, n, baseline, effect_size, alpha=alpha, variance=variance),
        })
    return pd.DataFrame(rows, columns=["sample_size", "power"])
