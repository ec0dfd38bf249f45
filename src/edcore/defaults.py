from __future__ import annotations

from typing import Any, Dict

from edcore.schema import ExperimentType

DEFAULT_ALPHA = 0.05
DEFAULT_POWER = 0.8
DEFAULT_MDE = 5.0  # percent of baseline
DEFAULT_TRAFFIC_ALLOCATION = (50.0, 50.0)
DEFAULT_VARIANTS = 2
DEFAULT_BUFFER_DAYS = 2

# Thresholds behind the general result warnings.
MIN_SAMPLE_SIZE = 100
SMALL_RELATIVE_MDE = 1.0  # percent
MAX_STANDARD_ALPHA = 0.05
MIN_RECOMMENDED_POWER = 0.8


def type_specific_defaults(experiment_type: ExperimentType) -> Dict[str, Any]:
    """Starting values for the type-specific bag of a new experiment."""
    t = ExperimentType(experiment_type)
    if t == ExperimentType.CLUSTER:
        return {"icc": 0.05, "cluster_size": 50}
    if t == ExperimentType.SWITCHBACK:
        return {"num_periods": 14, "period_length": 24, "autocorrelation": 0.3}
    if t == ExperimentType.FACTORIAL:
        return {
            "factors": [{"name": "Factor A", "levels": 2}, {"name": "Factor B", "levels": 2}],
            "detect_interaction": False,
        }
    if t == ExperimentType.MAB:
        return {"horizon": 100_000, "exploration_rate": 0.1, "num_arms": 3}
    if t == ExperimentType.CAUSAL_INFERENCE:
        return {"causal_method": "did", "serial_correlation": 0.2}
    return {}
