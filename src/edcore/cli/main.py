from __future__ import annotations

import argparse
import sys

from edcore.cli.commands.analysis import cmd_mde, cmd_power
from edcore.cli.commands.duration import cmd_duration
from edcore.cli.commands.run_config import cmd_run_config
from edcore.cli.commands.sample_size import cmd_sample_size
from edcore.cli.commands.validate import cmd_validate
from edcore.cli.commands.version import cmd_version


def _fail(msg: str) -> int:
    print(f"[edcore][error] {msg}", file=sys.stderr)
    return 2


def _add_metric_args(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--metric-type", required=True, choices=["binary", "continuous", "count"], type=str.lower)
    sp.add_argument("--baseline", required=True, type=float)
    sp.add_argument("--variance", type=float, default=None)
    sp.add_argument("--alpha", type=float, default=0.05)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="edcore", description="Experiment design: sample size, power, MDE and duration.")
    sub = p.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("version", help="Print installed package version.")
    sp.set_defaults(func=cmd_version)

    sp = sub.add_parser("sample-size", help="Required sample size for an experiment design.")
    _add_metric_args(sp)
    sp.add_argument("--std-dev", type=float, default=None)
    sp.add_argument("--metric-name", default=None)
    sp.add_argument("--power", type=float, default=0.8)
    sp.add_argument("--mde", type=float, default=5.0)
    sp.add_argument("--mde-type", choices=["relative", "absolute"], default="relative")
    sp.add_argument("--allocation", default="50,50", help="Comma-separated percentages, e.g. 50,50")
    sp.add_argument("--variants", type=int, default=2)
    sp.add_argument(
        "--experiment-type",
        default="AB_TEST",
        type=str.upper,
        choices=["AB_TEST", "CLUSTER", "SWITCHBACK", "FACTORIAL", "MAB", "CAUSAL_INFERENCE"],
    )
    # cluster
    sp.add_argument("--icc", type=float, default=None)
    sp.add_argument("--cluster-size", type=int, default=None)
    # switchback
    sp.add_argument("--num-periods", type=int, default=None)
    sp.add_argument("--period-length", type=float, default=None)
    sp.add_argument("--autocorrelation", type=float, default=None)
    # factorial
    sp.add_argument("--factors", default=None, help="Comma-separated level counts, e.g. 2,3")
    sp.add_argument("--detect-interaction", action="store_true", default=None)
    # bandit
    sp.add_argument("--num-arms", type=int, default=None)
    sp.add_argument("--horizon", type=int, default=None)
    sp.add_argument("--exploration-rate", type=float, default=None)
    # causal
    sp.add_argument("--causal-method", choices=["did", "rdd", "psm", "iv"], default=None)
    sp.add_argument("--serial-correlation", type=float, default=None)
    sp.add_argument("--bandwidth", type=float, default=None)
    # duration
    sp.add_argument("--daily-traffic", type=float, default=None)
    sp.add_argument("--buffer-days", type=int, default=2)
    sp.set_defaults(func=cmd_sample_size)

    sp = sub.add_parser("power", help="Power achieved at a given sample size per variant.")
    _add_metric_args(sp)
    sp.add_argument("--sample-size", required=True, type=int)
    sp.add_argument("--mde", required=True, type=float)
    sp.add_argument("--mde-type", choices=["relative", "absolute"], default="relative")
    sp.set_defaults(func=cmd_power)

    sp = sub.add_parser("mde", help="Minimum detectable effect at a given sample size per variant.")
    _add_metric_args(sp)
    sp.add_argument("--sample-size", required=True, type=int)
    sp.add_argument("--power", type=float, default=0.8)
    sp.set_defaults(func=cmd_mde)

    sp = sub.add_parser("duration", help="Calendar duration for a total sample size.")
    sp.add_argument("--total-sample-size", required=True, type=int)
    sp.add_argument("--daily-traffic", required=True, type=float)
    sp.add_argument("--allocation", default="50,50")
    sp.add_argument("--buffer-days", type=int, default=0)
    sp.add_argument("--start-date", default=None, help="ISO date, e.g. 2026-01-05")
    sp.set_defaults(func=cmd_duration)

    sp = sub.add_parser("validate", help="Validate an experiment YAML config.")
    sp.add_argument("--config", required=True)
    sp.set_defaults(func=cmd_validate)

    sp = sub.add_parser("run-config", help="Design an experiment from YAML and write a results bundle.")
    sp.add_argument("--config", required=True)
    sp.add_argument("--out", default=None)
    sp.set_defaults(func=cmd_run_config)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    try:
        return int(args.func(args))
    except (ValueError, FileNotFoundError) as e:
        return _fail(str(e))


if __name__ == "__main__":
    raise SystemExit(main())
