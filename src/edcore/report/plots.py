from __future__ import annotations

from typing import Dict, Optional

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.figure import Figure


def make_power_curve_plot(curve: pd.DataFrame, target_power: Optional[float] = None, sample_size: Optional[int] = None) -> Figure:
    fig = plt.figure(figsize=(8, 4.5))
    ax = fig.add_subplot(111)
    ax.plot(curve["sample_size"], curve["power"], label="power")
    if target_power is not None:
        ax.axhline(target_power, linestyle="--", linewidth=1.0, label=f"target ({target_power:g})")
    if sample_size is not None:
        ax.axvline(sample_size, linestyle=":", linewidth=1.0, label=f"n per variant ({sample_size:,})")
    ax.set_ylim(0.0, 1.02)
    ax.set_title("Power vs sample size per variant")
    ax.set_xlabel("sample size per variant")
    ax.set_ylabel("power")
    ax.legend(loc="best")
    fig.tight_layout()
    return fig


def make_mde_sensitivity_plot(table: pd.DataFrame) -> Figure:
    fig = plt.figure(figsize=(8, 4.5))
    ax = fig.add_subplot(111)
    ax.plot(table["sample_size"], table["mde"], marker="o")
    ax.set_xscale("log")
    ax.set_title("Minimum detectable effect vs sample size per variant")
    ax.set_xlabel("sample size per variant (log scale)")
    ax.set_ylabel("absolute MDE")
    fig.tight_layout()
    return fig


def make_design_plots(
    curve: pd.DataFrame,
    sensitivity: pd.DataFrame,
    target_power: Optional[float] = None,
    sample_size: Optional[int] = None,
) -> Dict[str, Figure]:
    return {
        "power_curve": make_power_curve_plot(curve, target_power=target_power, sample_size=sample_size),
        "mde_sensitivity": make_mde_sensitivity_plot(sensitivity),
    }
