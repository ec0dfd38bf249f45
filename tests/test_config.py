from datetime import date

import pytest

from edcore.config import config_from_dict, load_config
from edcore.metrics import (
    common_metrics,
    create_metric,
    find_metric,
    metrics_by_category,
    metrics_by_type,
    search_metrics,
)
from edcore.schema import ExperimentType, MdeType, MetricCategory, MetricType

CLUSTER_YAML = """\
name: checkout-redesign
experiment_type: cluster
daily_traffic: 50000
buffer_days: 3
start_date: 2026-03-02
metrics:
  - name: Conversion Rate
    type: binary
    baseline: 0.05
  - name: Bounce Rate
params:
  alpha: 0.05
  power: 0.8
  mde: 10
  mde_type: relative
  traffic_allocation: [50, 50]
  type_specific:
    icc: 0.05
    cluster_size: 50
"""


def test_load_config(tmp_path):
    p = tmp_path / "exp.yaml"
    p.write_text(CLUSTER_YAML, encoding="utf-8")
    cfg = load_config(p)

    assert cfg.name == "checkout-redesign"
    assert cfg.experiment_type == ExperimentType.CLUSTER
    assert cfg.daily_traffic == 50_000
    assert cfg.buffer_days == 3
    assert cfg.start_date == date(2026, 3, 2)
    assert cfg.params.mde_type == MdeType.RELATIVE
    assert cfg.params.type_specific == {"icc": 0.05, "cluster_size": 50}

    primary = cfg.primary_metric()
    assert primary.name == "Conversion Rate"
    assert primary.type == MetricType.BINARY

    # catalog lookup keeps the catalog's type and category
    bounce = cfg.metrics[1]
    assert bounce.type == MetricType.BINARY
    assert bounce.category == MetricCategory.GUARDRAIL
    assert bounce.baseline == 0.4


def test_defaults_fill_missing_fields():
    cfg = config_from_dict({
        "experiment_type": "SWITCHBACK",
        "metrics": [{"name": "m", "type": "count", "baseline": 2.0}],
    })
    assert cfg.params.alpha == 0.05
    assert cfg.params.power == 0.8
    assert cfg.params.mde == 5.0
    assert cfg.params.traffic_allocation == (50.0, 50.0)
    assert cfg.params.type_specific["num_periods"] == 14
    assert cfg.buffer_days == 2


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_non_mapping_root_raises(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)


@pytest.mark.parametrize(
    "cfg",
    [
        {"metrics": []},
        {"metrics": [{"name": "not in catalog", "type": "binary"}]},
        {"metrics": [{"name": "m", "type": "ratio", "baseline": 1.0}]},
        {"experiment_type": "holdout", "metrics": [{"name": "Conversion Rate"}]},
        {"metrics": [{"name": "Conversion Rate"}], "params": {"mde_type": "percent"}},
        {"metrics": [{"name": "m", "type": "binary", "baseline": None}]},
        {"metrics": [{"name": "m", "type": "count", "baseline": "many"}]},
        {"metrics": [{"name": "Conversion Rate"}], "params": {"traffic_allocation": 50}},
        {"metrics": [{"name": "Conversion Rate"}], "params": {"alpha": "low"}},
        {"metrics": [{"name": "Conversion Rate"}], "params": {"variants": [2]}},
        {"metrics": [{"name": "Conversion Rate"}], "daily_traffic": {"per_day": 10}},
    ],
)
def test_bad_configs(cfg):
    with pytest.raises(ValueError):
        config_from_dict(cfg)


def test_catalog():
    metrics = common_metrics()
    assert len(metrics) == 14
    assert all(m.baseline > 0 for m in metrics)
    assert all(m.variance is not None for m in metrics if m.type == MetricType.CONTINUOUS)

    assert {m.type for m in metrics_by_type(MetricType.COUNT)} == {MetricType.COUNT}
    assert all(m.category == MetricCategory.GUARDRAIL for m in metrics_by_category(MetricCategory.GUARDRAIL))
    assert [m.name for m in search_metrics("ORDER")] == ["Average Order Value"]

    assert find_metric("revenue per user").variance == 2500.0
    assert find_metric("unknown") is None


def test_catalog_returns_copies():
    m = find_metric("Conversion Rate")
    m.baseline = 0.5
    assert find_metric("Conversion Rate").baseline == 0.05


def test_create_metric():
    m = create_metric(name="AOV", metric_type="CONTINUOUS", baseline=80, std_dev=20.0)
    assert m.category == MetricCategory.SECONDARY
    assert m.resolved_variance() == 400.0
