from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from edcore.defaults import (
    DEFAULT_ALPHA,
    DEFAULT_BUFFER_DAYS,
    DEFAULT_MDE,
    DEFAULT_POWER,
    DEFAULT_TRAFFIC_ALLOCATION,
    DEFAULT_VARIANTS,
    type_specific_defaults,
)
from edcore.metrics import find_metric
from edcore.schema import (
    ExperimentConfig,
    ExperimentType,
    MdeType,
    MetricCategory,
    MetricDirection,
    MetricSpec,
    MetricType,
    StatisticalParams,
)


def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping (YAML dict).")
    return data


def _enum(enum_cls, raw: Any, field_name: str):
    try:
        return enum_cls(str(getattr(raw, "value", raw)).strip().upper())
    except ValueError:
        allowed = [e.value for e in enum_cls]
        raise ValueError(f"Field `{field_name}` must be one of {allowed}, got {raw!r}.") from None


def _num(raw: Any, field_name: str, cast=float):
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ValueError(f"Field `{field_name}` must be a number, got {raw!r}.")
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Field `{field_name}` must be a number, got {raw!r}.") from None


def _opt_float(raw: Any, field_name: str) -> float | None:
    return None if raw is None else _num(raw, field_name)


def _float_list(raw: Any, field_name: str) -> tuple:
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"Field `{field_name}` must be a list of numbers, got {raw!r}.")
    return tuple(_num(x, field_name) for x in raw)


def metric_from_dict(d: Mapping[str, Any]) -> MetricSpec:
    """
    Build a metric from a mapping.

    A mapping with only `name` (and optionally `category`) that matches a
    catalog metric picks up the catalog's type, baseline and variance.
    """
    if not isinstance(d, Mapping):
        raise ValueError(f"Each metric must be a mapping, got {d!r}.")
    if not d.get("name"):
        raise ValueError("Metric is missing required field: name")

    base = find_metric(str(d["name"])) if "type" not in d else None
    if base is None and ("type" not in d or "baseline" not in d):
        raise ValueError(f"Metric {d['name']!r} requires `type` and `baseline` (not in catalog).")

    return MetricSpec(
        name=str(d["name"]),
        type=_enum(MetricType, d["type"], "type") if "type" in d else base.type,
        baseline=_num(d["baseline"], "baseline") if "baseline" in d else base.baseline,
        category=_enum(MetricCategory, d["category"], "category") if "category" in d
        else (base.category if base else MetricCategory.PRIMARY),
        direction=_enum(MetricDirection, d["direction"], "direction") if "direction" in d
        else (base.direction if base else MetricDirection.INCREASE),
        variance=_opt_float(d["variance"], "variance") if "variance" in d else (base.variance if base else None),
        std_dev=_opt_float(d.get("std_dev"), "std_dev"),
        description=d.get("description", base.description if base else None),
    )


def params_from_dict(d: Mapping[str, Any], experiment_type: ExperimentType) -> StatisticalParams:
    if not isinstance(d, Mapping):
        raise ValueError("Field `params` must be a mapping (YAML dict).")

    bag = d.get("type_specific")
    if bag is None:
        bag = type_specific_defaults(experiment_type)
    if not isinstance(bag, Mapping):
        raise ValueError("Field `params.type_specific` must be a mapping (YAML dict).")

    try:
        mde_type = MdeType(str(d.get("mde_type", MdeType.RELATIVE.value)).strip().lower())
    except ValueError:
        raise ValueError("Field `params.mde_type` must be 'relative' or 'absolute'.") from None

    return StatisticalParams(
        alpha=_num(d.get("alpha", DEFAULT_ALPHA), "params.alpha"),
        power=_num(d.get("power", DEFAULT_POWER), "params.power"),
        mde=_num(d.get("mde", DEFAULT_MDE), "params.mde"),
        mde_type=mde_type,
        traffic_allocation=_float_list(d.get("traffic_allocation", DEFAULT_TRAFFIC_ALLOCATION), "params.traffic_allocation"),
        variants=_num(d.get("variants", DEFAULT_VARIANTS), "params.variants", cast=int),
        type_specific=dict(bag),
    )


def config_from_dict(cfg: Mapping[str, Any]) -> ExperimentConfig:
    experiment_type = _enum(ExperimentType, cfg.get("experiment_type", "AB_TEST"), "experiment_type")

    raw_metrics = cfg.get("metrics") or []
    if not isinstance(raw_metrics, list) or not raw_metrics:
        raise ValueError("Field `metrics` must be a non-empty list.")
    metrics: List[MetricSpec] = [metric_from_dict(m) for m in raw_metrics]

    params = params_from_dict(cfg.get("params", {}) or {}, experiment_type)

    start = cfg.get("start_date")
    if start is not None and not isinstance(start, date):
        start = date.fromisoformat(str(start))

    return ExperimentConfig(
        name=str(cfg.get("name", "") or ""),
        experiment_type=experiment_type,
        metrics=metrics,
        params=params,
        daily_traffic=_opt_float(cfg.get("daily_traffic"), "daily_traffic"),
        buffer_days=_num(cfg.get("buffer_days", DEFAULT_BUFFER_DAYS), "buffer_days", cast=int),
        start_date=start,
    )


def load_config(path: str | Path) -> ExperimentConfig:
    return config_from_dict(load_yaml(path))
