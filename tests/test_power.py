import math

import numpy as np
import pandas as pd
import pytest

from edcore.errors import DegenerateEffectError, InvalidRangeError
from edcore.power import (
    base_sample_size,
    calculate_power,
    continuous_variance,
    power_curve,
    power_from_n,
    resolve_effect_size,
    sample_size_proportions,
)
from edcore.schema import MdeType, MetricType


def test_relative_and_absolute_effect():
    assert resolve_effect_size(0.05, 10, MdeType.RELATIVE) == pytest.approx(0.005)
    assert resolve_effect_size(0.05, 0.01, "absolute") == 0.01


def test_binary_sample_size_five_to_five_and_a_half_percent():
    n = sample_size_proportions(0.05, 0.055, alpha=0.05, power=0.8)
    assert n == pytest.approx(31234.6, abs=0.5)
    assert math.ceil(n) == 31235


def test_continuous_sample_size_with_variance():
    n = base_sample_size(MetricType.CONTINUOUS, 50.0, 2.5, alpha=0.05, power=0.8, variance=2500.0)
    assert math.ceil(n) == 6280


def test_continuous_default_variance_is_ten_percent_cv():
    assert continuous_variance(50.0) == pytest.approx(25.0)
    assert continuous_variance(50.0, 7.0) == 7.0


def test_count_sample_size_uses_poisson_variance():
    n = base_sample_size(MetricType.COUNT, 1.5, 0.15)
    z = 1.959964 + 0.841621
    assert n == pytest.approx(2 * z ** 2 * 1.5 / 0.15 ** 2, rel=1e-5)


def test_zero_effect_is_rejected():
    with pytest.raises(DegenerateEffectError):
        sample_size_proportions(0.05, 0.05)
    with pytest.raises(DegenerateEffectError):
        base_sample_size(MetricType.CONTINUOUS, 50.0, 0.0, variance=100.0)


def test_treatment_rate_outside_unit_interval_is_rejected():
    with pytest.raises(InvalidRangeError):
        sample_size_proportions(0.95, 1.05)


def test_sample_size_decreases_with_effect_and_grows_with_power():
    small = base_sample_size(MetricType.BINARY, 0.1, 0.005)
    large = base_sample_size(MetricType.BINARY, 0.1, 0.02)
    assert large < small

    lo = base_sample_size(MetricType.COUNT, 2.0, 0.1, power=0.7)
    hi = base_sample_size(MetricType.COUNT, 2.0, 0.1, power=0.95)
    assert hi > lo


@pytest.mark.parametrize(
    "metric_type,baseline,effect,variance",
    [
        (MetricType.BINARY, 0.05, 0.005, None),
        (MetricType.CONTINUOUS, 50.0, 2.5, 2500.0),
        (MetricType.CONTINUOUS, 120.0, -3.0, None),
        (MetricType.COUNT, 1.5, 0.15, None),
    ],
)
def test_power_at_required_n_matches_target(metric_type, baseline, effect, variance):
    n = base_sample_size(metric_type, baseline, effect, alpha=0.05, power=0.8, variance=variance)
    pwr = power_from_n(metric_type, n, baseline, effect, alpha=0.05, variance=variance)
    # one-tail approximation drops the far tail, which is negligible at 80% power
    assert pwr == pytest.approx(0.8, abs=1e-3)

    rounded = power_from_n(metric_type, math.ceil(n), baseline, effect, alpha=0.05, variance=variance)
    assert rounded >= pwr


def test_calculate_power_result():
    res = calculate_power(31235, 0.05, 0.005, 0.05, MetricType.BINARY)
    assert res.sample_size == 31235
    assert res.alpha == 0.05
    assert 0.79 < res.power < 0.81


def test_power_is_bounded_and_monotone_in_n():
    curve = power_curve(100, 50_000, 25, 0.05, 0.005, 0.05, MetricType.BINARY)
    assert isinstance(curve, pd.DataFrame)
    assert list(curve.columns) == ["sample_size", "power"]
    assert len(curve) == 26
    assert curve["sample_size"].iloc[0] == 100
    assert curve["sample_size"].iloc[-1] == 50_000

    p = curve["power"].to_numpy(dtype=float)
    assert np.all((p >= 0.0) & (p <= 1.0))
    assert np.all(np.diff(p) >= -1e-12)


def test_power_curve_rejects_bad_range():
    with pytest.raises(InvalidRangeError):
        power_curve(100, 50, 10, 0.05, 0.005, 0.05, MetricType.BINARY)
    with pytest.raises(InvalidRangeError):
        power_curve(100, 500, 0, 0.05, 0.005, 0.05, MetricType.BINARY)


def test_alpha_outside_unit_interval_is_rejected():
    with pytest.raises(InvalidRangeError):
        base_sample_size(MetricType.BINARY, 0.05, 0.005, alpha=0.0)


def test_stricter_alpha_needs_more_units():
    ns = [base_sample_size(MetricType.BINARY, 0.1, 0.01, alpha=a) for a in (0.1, 0.05, 0.01)]
    assert ns[0] < ns[1] < ns[2]
