"""
Design-specific corrections applied after the base per-variant sample size.

Order of application:

1. traffic split and variant count (every design);
2. exactly one adjuster, chosen by experiment type from `ADJUSTERS`.

Cluster, switchback and causal designs return an adjusted `n` that still goes
through the general rounding/warning path. Factorial and bandit designs
report their own per-variant and total figures (`Adjustment.total` is set)
and skip that path.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from edcore.schema import (
    BanditDetails,
    BanditParams,
    CausalDetails,
    CausalMethod,
    CausalParams,
    ClusterDetails,
    ClusterParams,
    DesignDetails,
    DesignParams,
    ExperimentType,
    FactorialDetails,
    FactorialParams,
    SwitchbackDetails,
    SwitchbackParams,
)

# Fewer clusters per arm than this makes cluster-level inference unreliable.
MIN_CLUSTERS_PER_ARM = 10

# Heuristic inflation for powering interaction effects in factorial designs.
INTERACTION_INFLATION = 4


@dataclass
class Adjustment:
    n: float
    details: Optional[DesignDetails] = None
    assumptions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    total: Optional[int] = None  # set by designs that return early


def adjust_for_allocation(
    n: float,
    traffic_allocation: Sequence[float],
    variants: int,
) -> Tuple[float, List[str], List[str]]:
    """
    Inflate `n` for an unequal control/treatment split and for extra variants.

    Only the first two allocation entries are compared.
    """
    assumptions: List[str] = []
    warnings: List[str] = []

    control = traffic_allocation[0] / 100.0
    treatment = traffic_allocation[1] / 100.0
    if control != treatment:
        r = treatment / control
        n = n * (1 + r) ** 2 / (4 * r)
        assumptions.append(
            f"Adjusted for unequal traffic allocation ({traffic_allocation[0]:g}/{traffic_allocation[1]:g})"
        )

    if variants > 2:
        n = n * (variants - 1)
        assumptions.append(f"Adjusted for {variants} variants (including control)")
        warnings.append("Multiple variants increase required sample size. Consider multiple testing correction.")

    return n, assumptions, warnings


def adjust_ab_test(n: float, variants: int, params: Optional[DesignParams]) -> Adjustment:
    return Adjustment(n=n)


def design_effect(cluster_size: float, icc: float) -> float:
    """DEFF = 1 + (m - 1) * ICC; never below 1 for m >= 1 and ICC >= 0."""
    return 1.0 + (cluster_size - 1) * icc


def adjust_cluster(n: float, variants: int, params: Optional[DesignParams]) -> Adjustment:
    if not isinstance(params, ClusterParams) or params.icc is None or params.cluster_size is None:
        return Adjustment(n=n)

    deff = design_effect(params.cluster_size, params.icc)
    adjusted = math.ceil(n * deff)
    per_arm = math.ceil(adjusted / params.cluster_size)

    out = Adjustment(
        n=adjusted,
        details=ClusterDetails(design_effect=deff, clusters_per_arm=per_arm, clusters_needed=per_arm * variants),
        assumptions=[
            f"Intra-cluster correlation (ICC): {params.icc:g}",
            f"Average cluster size: {params.cluster_size}",
            f"Design effect: {deff:.2f}",
        ],
    )
    if per_arm < MIN_CLUSTERS_PER_ARM:
        out.warnings.append(
            f"Only {per_arm} clusters per arm. Fewer than {MIN_CLUSTERS_PER_ARM} clusters per arm "
            "compromises the reliability of cluster-level inference."
        )
    return out


def adjust_switchback(n: float, variants: int, params: Optional[DesignParams]) -> Adjustment:
    if not isinstance(params, SwitchbackParams) or params.num_periods is None or params.autocorrelation is None:
        return Adjustment(n=n)

    rho = params.autocorrelation
    multiplier = (1 - rho) / (1 + rho)
    adjusted = math.ceil(n / multiplier)
    effective_periods = max(1, math.floor(params.num_periods * multiplier))

    out = Adjustment(
        n=adjusted,
        details=SwitchbackDetails(effective_multiplier=multiplier, effective_periods=effective_periods),
        assumptions=[
            f"Switchback periods: {params.num_periods}",
            f"Temporal autocorrelation: {rho:g}",
            f"Effective independent periods: {effective_periods}",
        ],
        warnings=["Switchback sizing assumes no carryover effect between adjacent periods."],
    )
    if params.period_length is not None:
        out.assumptions.insert(1, f"Period length: {params.period_length:g} hours")
    return out


def adjust_factorial(n: float, variants: int, params: Optional[DesignParams]) -> Adjustment:
    if not isinstance(params, FactorialParams) or not params.factors:
        return Adjustment(n=n)

    total_cells = math.prod(f.levels for f in params.factors)
    cell = math.ceil(n)
    total = cell * total_cells
    layout = " x ".join(str(f.levels) for f in params.factors)

    assumptions = [
        f"Factorial layout: {layout} = {total_cells} cells",
        f"Sample size per cell: {cell}",
    ]
    interaction: Optional[int] = None
    if params.detect_interaction:
        interaction = cell * INTERACTION_INFLATION * total_cells
        total = interaction
        assumptions.append(f"Sized to detect interaction effects ({INTERACTION_INFLATION}x per cell)")

    return Adjustment(
        n=cell,
        details=FactorialDetails(total_cells=total_cells, cell_sample_size=cell, interaction_sample_size=interaction),
        assumptions=assumptions,
        total=total,
    )


def adjust_bandit(n: float, variants: int, params: Optional[DesignParams]) -> Adjustment:
    p = params if isinstance(params, BanditParams) else BanditParams()

    explore_budget = math.ceil(p.horizon * p.exploration_rate)
    per_arm = math.ceil(explore_budget / p.num_arms)
    regret = p.exploration_rate * p.horizon * (p.num_arms - 1) / p.num_arms

    return Adjustment(
        n=per_arm,
        details=BanditDetails(explore_budget=explore_budget, per_arm_explore=per_arm, estimated_regret=regret),
        assumptions=[
            f"Arms: {p.num_arms}",
            f"Horizon: {p.horizon} observations",
            f"Exploration rate (epsilon): {p.exploration_rate:g}",
            f"Exploration budget: {explore_budget} observations ({per_arm} per arm)",
        ],
        warnings=[
            "Multi-armed bandits do not use fixed-sample hypothesis testing; "
            "power and MDE are not meaningful in the traditional sense."
        ],
        total=p.horizon,
    )


def adjust_causal(n: float, variants: int, params: Optional[DesignParams]) -> Adjustment:
    p = params if isinstance(params, CausalParams) else CausalParams()
    notes: List[str] = []
    out = Adjustment(n=n)
    inflation = 1.0

    if p.method == CausalMethod.DID:
        rho = p.serial_correlation or 0.0
        if rho > 0:
            # AR(1) variance inflation
            inflation = (1 + rho) / (1 - rho)
            out.n = math.ceil(n * inflation)
            out.assumptions.append(f"Serial correlation {rho:g} inflates variance by {inflation:.2f}x (AR(1))")
        notes.append("Difference-in-differences assumes parallel trends between groups absent treatment.")
    elif p.method == CausalMethod.RDD:
        notes.append("Effective sample size depends on the bandwidth around the threshold.")
        if p.bandwidth is not None:
            notes.append(f"Bandwidth: {p.bandwidth:g}. Smaller bandwidth reduces bias but also power.")
        out.warnings.append("Regression discontinuity sample size is approximate; only units near the threshold inform the estimate.")
    elif p.method == CausalMethod.PSM:
        out.warnings.append("Propensity score matching requires overlap in covariates between treated and control units.")
    else:
        out.warnings.append("Instrumental-variable reliability depends on instrument strength (first-stage F-statistic).")

    out.assumptions.insert(0, f"Causal inference method: {p.method.value}")
    out.details = CausalDetails(method=p.method, method_notes=tuple(notes), inflation=inflation)
    return out


Adjuster = Callable[[float, int, Optional[DesignParams]], Adjustment]

ADJUSTERS: Dict[ExperimentType, Adjuster] = {
    ExperimentType.AB_TEST: adjust_ab_test,
    ExperimentType.CLUSTER: adjust_cluster,
    ExperimentType.SWITCHBACK: adjust_switchback,
    ExperimentType.FACTORIAL: adjust_factorial,
    ExperimentType.MAB: adjust_bandit,
    ExperimentType.CAUSAL_INFERENCE: adjust_causal,
}


def adjust_for_design(
    experiment_type: ExperimentType,
    n: float,
    variants: int,
    params: Optional[DesignParams],
) -> Adjustment:
    return ADJUSTERS[ExperimentType(experiment_type)](n, variants, params)
