from datetime import date

import pytest

from edcore.duration import estimate_duration
from edcore.errors import InvalidRangeError, ZeroTrafficError


def test_duration_with_buffer():
    est = estimate_duration(20_000, 5_000, [50, 50], buffer_days=2)
    assert est.traffic_per_day == 5_000
    assert est.days == 6
    assert est.weeks == 1
    assert any("buffer" in a for a in est.assumptions)


def test_partial_allocation_reduces_effective_traffic():
    est = estimate_duration(20_000, 5_000, [25, 25])
    assert est.traffic_per_day == 2_500
    assert est.days == 8
    assert est.weeks == 2


def test_dates():
    est = estimate_duration(20_000, 5_000, [50, 50], buffer_days=2, start_date=date(2026, 1, 5))
    assert est.end_date == date(2026, 1, 11)
    assert est.to_dict()["end_date"] == "2026-01-11"


@pytest.mark.parametrize("traffic", [0, -10])
def test_no_traffic_is_rejected(traffic):
    with pytest.raises(ZeroTrafficError):
        estimate_duration(1_000, traffic, [50, 50])


def test_zero_allocation_is_rejected():
    with pytest.raises(ZeroTrafficError):
        estimate_duration(1_000, 1_000, [0, 0])


def test_negative_buffer_is_rejected():
    with pytest.raises(InvalidRangeError):
        estimate_duration(1_000, 1_000, [50, 50], buffer_days=-1)
