import pytest

from edcore.errors import DegenerateEffectError, ZeroTrafficError
from edcore.mde import (
    calculate_mde,
    mde_for_power_levels,
    mde_sensitivity,
    sample_size_for_target_mde,
    validate_mde_feasibility,
)
from edcore.schema import MdeType, MetricType


def test_mde_relative_is_percent_of_baseline():
    res = calculate_mde(10_000, 0.05, 0.8, 0.05, MetricType.BINARY)
    assert res.mde_relative == pytest.approx(res.mde_absolute / 0.05 * 100.0)
    assert res.sample_size == 10_000


@pytest.mark.parametrize(
    "metric_type,baseline,variance",
    [
        (MetricType.BINARY, 0.05, None),
        (MetricType.CONTINUOUS, 50.0, 2500.0),
        (MetricType.COUNT, 1.5, None),
    ],
)
def test_sample_size_for_mde_inverts_calculate_mde(metric_type, baseline, variance):
    n = sample_size_for_target_mde(10.0, MdeType.RELATIVE, 0.05, 0.8, baseline, metric_type, variance)
    res = calculate_mde(n, 0.05, 0.8, baseline, metric_type, variance)
    # n is rounded up, so the achieved MDE is at or just below the target
    assert res.mde_relative <= 10.0
    assert res.mde_relative == pytest.approx(10.0, rel=1e-3)


def test_mde_shrinks_with_sample_size():
    tab = mde_sensitivity([100, 1_000, 10_000, 100_000], 0.05, 0.8, 50.0, MetricType.CONTINUOUS, 2500.0)
    assert list(tab.columns) == ["sample_size", "mde"]
    assert tab["mde"].is_monotonic_decreasing
    # quadrupling n halves the mde
    a = calculate_mde(1_000, 0.05, 0.8, 50.0, MetricType.CONTINUOUS, 2500.0).mde_absolute
    b = calculate_mde(4_000, 0.05, 0.8, 50.0, MetricType.CONTINUOUS, 2500.0).mde_absolute
    assert b == pytest.approx(a / 2.0)


def test_mde_grows_with_power():
    tab = mde_for_power_levels(5_000, 0.05, [0.7, 0.8, 0.9], 0.1, MetricType.BINARY)
    assert list(tab.columns) == ["power", "mde_absolute", "mde_relative"]
    assert tab["mde_absolute"].is_monotonic_increasing


def test_zero_target_mde_is_rejected():
    with pytest.raises(DegenerateEffectError):
        sample_size_for_target_mde(0.0, MdeType.ABSOLUTE, 0.05, 0.8, 0.05, MetricType.BINARY)


def test_feasible_target():
    res = validate_mde_feasibility(10.0, MdeType.RELATIVE, 0.05, 0.8, 0.05, MetricType.BINARY, 10_000, 30)
    assert res.feasible
    assert res.required_sample_size == 29_826
    assert res.required_days == 3
    assert res.achievable_mde is None


def test_infeasible_target_reports_achievable_mde():
    res = validate_mde_feasibility(10.0, MdeType.RELATIVE, 0.05, 0.8, 0.05, MetricType.BINARY, 1_000, 10)
    assert not res.feasible
    assert res.required_days == 30
    assert res.achievable_mde is not None and res.achievable_mde > 10.0
    assert "10 days available" in res.message


def test_feasibility_requires_traffic():
    with pytest.raises(ZeroTrafficError):
        validate_mde_feasibility(10.0, MdeType.RELATIVE, 0.05, 0.8, 0.05, MetricType.BINARY, 0, 10)
