from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class ExperimentType(str, Enum):
    AB_TEST = "AB_TEST"
    CLUSTER = "CLUSTER"
    SWITCHBACK = "SWITCHBACK"
    FACTORIAL = "FACTORIAL"
    MAB = "MAB"  # multi-armed bandit
    CAUSAL_INFERENCE = "CAUSAL_INFERENCE"


class MetricType(str, Enum):
    BINARY = "BINARY"  # conversion rate
    CONTINUOUS = "CONTINUOUS"  # revenue
    COUNT = "COUNT"  # purchases per user


class MetricCategory(str, Enum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    GUARDRAIL = "GUARDRAIL"
    MONITOR = "MONITOR"


class MetricDirection(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    EITHER = "EITHER"


class MdeType(str, Enum):
    RELATIVE = "relative"  # percent of baseline
    ABSOLUTE = "absolute"


class CausalMethod(str, Enum):
    DID = "did"
    RDD = "rdd"
    PSM = "psm"
    IV = "iv"


@dataclass
class MetricSpec:
    """A tracked measurement. `variance`/`std_dev` only matter for CONTINUOUS metrics."""

    name: str
    type: MetricType
    baseline: float
    category: MetricCategory = MetricCategory.PRIMARY
    direction: MetricDirection = MetricDirection.INCREASE
    variance: Optional[float] = None
    std_dev: Optional[float] = None
    description: Optional[str] = None

    def resolved_variance(self) -> Optional[float]:
        """Explicit variance, else std_dev squared, else None."""
        if self.variance is not None:
            return float(self.variance)
        if self.std_dev is not None:
            return float(self.std_dev) ** 2
        return None


@dataclass
class StatisticalParams:
    """
    Calculation configuration.

    `type_specific` is a loose bag whose shape depends on the experiment type;
    only the keys of the active type are ever read (see `edcore.adjusters`).
    The engine never mutates it. Instances compare by value but are not
    hashable, so callers that memoize results key on their own snapshot.
    """

    alpha: float = 0.05
    power: float = 0.8
    mde: float = 5.0
    mde_type: MdeType = MdeType.RELATIVE
    traffic_allocation: Tuple[float, ...] = (50.0, 50.0)
    variants: int = 2
    type_specific: Dict[str, Any] = field(default_factory=dict)


# Typed views of `StatisticalParams.type_specific`, one per experiment type.

@dataclass(frozen=True)
class ClusterParams:
    icc: Optional[float] = None
    cluster_size: Optional[int] = None


@dataclass(frozen=True)
class SwitchbackParams:
    num_periods: Optional[int] = None
    period_length: Optional[float] = None  # hours
    autocorrelation: Optional[float] = None


@dataclass(frozen=True)
class Factor:
    name: str
    levels: int


@dataclass(frozen=True)
class FactorialParams:
    factors: Tuple[Factor, ...] = ()
    detect_interaction: bool = False


@dataclass(frozen=True)
class BanditParams:
    num_arms: int = 3
    horizon: int = 100_000
    exploration_rate: float = 0.1


@dataclass(frozen=True)
class CausalParams:
    method: CausalMethod = CausalMethod.DID
    serial_correlation: Optional[float] = None  # DiD only
    bandwidth: Optional[float] = None  # RDD only


DesignParams = Union[ClusterParams, SwitchbackParams, FactorialParams, BanditParams, CausalParams]


# Design-specific result payloads. Exactly one (or none, for AB_TEST) is attached
# to a SampleSizeResult.

@dataclass(frozen=True)
class ClusterDetails:
    design_effect: float
    clusters_per_arm: int
    clusters_needed: int


@dataclass(frozen=True)
class SwitchbackDetails:
    effective_multiplier: float
    effective_periods: int


@dataclass(frozen=True)
class FactorialDetails:
    total_cells: int
    cell_sample_size: int
    interaction_sample_size: Optional[int] = None


@dataclass(frozen=True)
class BanditDetails:
    explore_budget: int
    per_arm_explore: int
    estimated_regret: float


@dataclass(frozen=True)
class CausalDetails:
    method: CausalMethod
    method_notes: Tuple[str, ...] = ()
    inflation: float = 1.0


DesignDetails = Union[ClusterDetails, SwitchbackDetails, FactorialDetails, BanditDetails, CausalDetails]


@dataclass(frozen=True)
class SampleSizeResult:
    """
    Output of a sample-size calculation.

    Attributes
    ----------
    sample_size_per_variant : int
        Required units per variant (per cell for factorial designs,
        per-arm exploration budget for bandits).
    total_sample_size : int
        Total units across variants (horizon for bandits).
    calculated_power : float
        Target power the design is sized for.
    calculated_mde : float
        MDE as percent of baseline.
    assumptions : tuple of str
        What was assumed, in the order it was assumed.
    warnings : tuple of str
        Cautions for the reader; empty when nothing to flag.
    details : DesignDetails or None
        Design-specific payload; None for plain A/B tests.
    """

    sample_size_per_variant: int
    total_sample_size: int
    calculated_power: float
    calculated_mde: float
    assumptions: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    details: Optional[DesignDetails] = None

    @property
    def is_adaptive(self) -> bool:
        # bandits do not use fixed-sample hypothesis testing, so power/MDE are nominal
        return isinstance(self.details, BanditDetails)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "sample_size_per_variant": self.sample_size_per_variant,
            "total_sample_size": self.total_sample_size,
            "calculated_power": self.calculated_power,
            "calculated_mde": self.calculated_mde,
            "assumptions": list(self.assumptions),
            "warnings": list(self.warnings),
            "is_adaptive": self.is_adaptive,
        }
        if self.details is not None:
            payload = asdict(self.details)
            if isinstance(self.details, CausalDetails):
                payload["method"] = self.details.method.value
                payload["method_notes"] = list(self.details.method_notes)
            d.update(payload)
        return d


@dataclass(frozen=True)
class DurationEstimate:
    days: int
    weeks: int
    traffic_per_day: float
    assumptions: Tuple[str, ...] = ()
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": self.days,
            "weeks": self.weeks,
            "traffic_per_day": self.traffic_per_day,
            "assumptions": list(self.assumptions),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


@dataclass(frozen=True)
class PowerAnalysisResult:
    power: float
    sample_size: int
    effect_size: float
    alpha: float


@dataclass(frozen=True)
class MDEResult:
    mde_absolute: float
    mde_relative: float  # percent of baseline
    sample_size: int
    power: float
    alpha: float


@dataclass(frozen=True)
class FeasibilityResult:
    feasible: bool
    required_sample_size: int
    required_days: int
    message: str
    achievable_mde: Optional[float] = None


@dataclass
class ExperimentConfig:
    """Everything the engine needs for one experiment, as loaded from a config file."""

    experiment_type: ExperimentType
    metrics: List[MetricSpec]
    params: StatisticalParams = field(default_factory=StatisticalParams)
    name: str = ""
    daily_traffic: Optional[float] = None
    buffer_days: int = 2
    start_date: Optional[date] = None

    def primary_metric(self) -> MetricSpec:
        for m in self.metrics:
            if m.category == MetricCategory.PRIMARY:
                return m
        raise ValueError("Experiment config has no PRIMARY metric.")
