from __future__ import annotations

import math
from typing import Any

from edcore.cli.bundle import (
    dumps,
    prepare_out_dir,
    save_plot,
    write_results_json,
    write_run_meta,
    write_table,
)
from edcore.config import load_config
from edcore.design import design_experiment
from edcore.mde import mde_sensitivity
from edcore.power import base_sample_size, power_curve, resolve_effect_size
from edcore.report.plots import make_design_plots

SENSITIVITY_SIZES = [100, 250, 500, 1_000, 2_500, 5_000, 10_000, 25_000, 50_000, 100_000, 250_000, 1_000_000]
CURVE_STEPS = 40


def cmd_run_config(args) -> int:
    cfg = load_config(args.config)
    metric = cfg.primary_metric()
    result, duration = design_experiment(cfg)

    out_dir = prepare_out_dir(getattr(args, "out", None), command="run-config")
    write_run_meta(out_dir, vars(args), extra={"command": "run-config", "config": str(args.config)})

    artifacts: dict[str, Any] = {"plots": [], "tables": []}

    # Curves describe the unadjusted two-sample model; bandits have no fixed-sample power.
    if not result.is_adaptive:
        p = cfg.params
        variance = metric.resolved_variance()
        effect = resolve_effect_size(metric.baseline, p.mde, p.mde_type)
        n0 = int(math.ceil(base_sample_size(metric.type, metric.baseline, effect, p.alpha, p.power, variance)))

        curve = power_curve(
            min_sample_size=max(2, n0 // 4),
            max_sample_size=max(3 * n0, 8),
            steps=CURVE_STEPS,
            alpha=p.alpha,
            effect_size=effect,
            baseline=metric.baseline,
            metric_type=metric.type,
            variance=variance,
        )
        sensitivity = mde_sensitivity(SENSITIVITY_SIZES, p.alpha, p.power, metric.baseline, metric.type, variance)

        artifacts["tables"].append(write_table(out_dir, "power_curve", curve))
        artifacts["tables"].append(write_table(out_dir, "mde_sensitivity", sensitivity))
        for name, fig in make_design_plots(curve, sensitivity, target_power=p.power, sample_size=n0).items():
            artifacts["plots"].append(save_plot(out_dir, name, fig))

    payload: dict[str, Any] = {
        "command": "run-config",
        "inputs": {
            "name": cfg.name,
            "experiment_type": cfg.experiment_type,
            "primary_metric": metric,
            "params": cfg.params,
            "daily_traffic": cfg.daily_traffic,
            "buffer_days": cfg.buffer_days,
        },
        "estimates": {
            "sample_size": result.to_dict(),
            "duration": duration.to_dict() if duration is not None else None,
        },
        "warnings": list(result.warnings),
        "artifacts": artifacts,
    }

    write_results_json(out_dir, payload)
    print(dumps(payload["estimates"]))
    return 0
