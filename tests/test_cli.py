import importlib.util
import json
from pathlib import Path

import pandas as pd
import pytest

from edcore.cli.main import main

ROOT = Path(__file__).resolve().parents[1]


def _verify_bundle_module():
    spec = importlib.util.spec_from_file_location("verify_bundle", ROOT / "ci" / "verify_bundle.py")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def _write_config(tmp_path, body):
    p = tmp_path / "exp.yaml"
    p.write_text(body, encoding="utf-8")
    return p


def test_sample_size_command(capsys):
    rc = main(["sample-size", "--metric-type", "binary", "--baseline", "0.05", "--mde", "10"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["experiment_type"] == "AB_TEST"
    assert out["result"]["sample_size_per_variant"] == 31_235
    assert "duration" not in out


def test_sample_size_command_cluster_with_duration(capsys):
    rc = main([
        "sample-size", "--metric-type", "BINARY", "--baseline", "0.05", "--mde", "10",
        "--experiment-type", "cluster", "--icc", "0.05", "--cluster-size", "50",
        "--daily-traffic", "50000",
    ])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["result"]["clusters_needed"] == 4_312
    assert out["duration"]["days"] == 5 + 2


def test_sample_size_command_factorial(capsys):
    rc = main([
        "sample-size", "--metric-type", "continuous", "--baseline", "50", "--variance", "2500",
        "--experiment-type", "FACTORIAL", "--factors", "2,2", "--detect-interaction",
    ])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["result"]["total_cells"] == 4
    assert out["result"]["interaction_sample_size"] == 6_280 * 4 * 4


def test_power_and_mde_commands(capsys):
    assert main(["power", "--metric-type", "binary", "--baseline", "0.05", "--mde", "10", "--sample-size", "31235"]) == 0
    pwr = json.loads(capsys.readouterr().out)
    assert pwr["power"] == pytest.approx(0.8, abs=1e-3)

    assert main(["mde", "--metric-type", "count", "--baseline", "1.5", "--sample-size", "1000"]) == 0
    res = json.loads(capsys.readouterr().out)
    assert res["mde_relative"] > 0


def test_duration_command(capsys):
    rc = main([
        "duration", "--total-sample-size", "20000", "--daily-traffic", "5000",
        "--buffer-days", "2", "--start-date", "2026-01-05",
    ])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["days"] == 6
    assert out["weeks"] == 1
    assert out["end_date"] == "2026-01-11"


def test_bad_input_exits_with_error(capsys):
    rc = main(["sample-size", "--metric-type", "binary", "--baseline", "0.05", "--mde", "0"])
    assert rc == 2
    assert "[edcore][error]" in capsys.readouterr().err


def test_validate_command(tmp_path, capsys):
    good = _write_config(tmp_path, "metrics:\n  - name: Conversion Rate\n")
    assert main(["validate", "--config", str(good)]) == 0
    assert capsys.readouterr().out.strip() == "OK"

    bad = tmp_path / "bad.yaml"
    bad.write_text(
        "metrics:\n  - name: cr\n    type: binary\n    baseline: 1.5\nparams:\n  alpha: 0\n",
        encoding="utf-8",
    )
    assert main(["validate", "--config", str(bad)]) == 2
    out = capsys.readouterr().out
    assert out.startswith("INVALID")
    assert "alpha" in out and "baseline" in out


@pytest.mark.parametrize(
    "body,needle",
    [
        ("metrics:\n  - name: m\n    type: binary\n    baseline: null\n", "baseline"),
        ("metrics:\n  - name: Conversion Rate\nparams:\n  traffic_allocation: 50\n", "traffic_allocation"),
        (
            "experiment_type: FACTORIAL\nmetrics:\n  - name: Conversion Rate\n"
            "params:\n  type_specific:\n    factors: 3\n",
            "factors",
        ),
    ],
)
def test_validate_reports_wrongly_shaped_fields(tmp_path, capsys, body, needle):
    cfg = _write_config(tmp_path, body)
    assert main(["validate", "--config", str(cfg)]) == 2
    out = capsys.readouterr().out
    assert out.startswith("INVALID")
    assert needle in out


def test_run_config_writes_bundle(tmp_path, capsys):
    cfg = _write_config(
        tmp_path,
        "experiment_type: AB_TEST\n"
        "daily_traffic: 20000\n"
        "metrics:\n"
        "  - name: Revenue per User\n"
        "params:\n"
        "  mde: 5\n",
    )
    out_dir = tmp_path / "bundle"
    assert main(["run-config", "--config", str(cfg), "--out", str(out_dir)]) == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["sample_size"]["sample_size_per_variant"] == 6_280
    assert printed["duration"]["days"] == 1 + 2

    results = json.loads((out_dir / "results.json").read_text(encoding="utf-8"))
    assert results["command"] == "run-config"
    assert results["inputs"]["experiment_type"] == "AB_TEST"
    assert sorted(results["artifacts"]["plots"]) == ["plots/mde_sensitivity.png", "plots/power_curve.png"]

    curve = pd.read_csv(out_dir / "tables" / "power_curve.csv")
    assert list(curve.columns) == ["sample_size", "power"]
    assert curve["power"].between(0, 1).all()

    meta = json.loads((out_dir / "run_meta.json").read_text(encoding="utf-8"))
    assert "func" not in meta["args"]

    assert _verify_bundle_module().main(["verify_bundle", str(out_dir)]) == 0


def test_run_config_bandit_has_no_curves(tmp_path, capsys):
    cfg = _write_config(
        tmp_path,
        "experiment_type: MAB\n"
        "metrics:\n"
        "  - name: Conversion Rate\n",
    )
    out_dir = tmp_path / "bandit"
    assert main(["run-config", "--config", str(cfg), "--out", str(out_dir)]) == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["sample_size"]["is_adaptive"] is True
    assert printed["duration"] is None

    results = json.loads((out_dir / "results.json").read_text(encoding="utf-8"))
    assert results["artifacts"] == {"plots": [], "tables": []}
    assert _verify_bundle_module().main(["verify_bundle", str(out_dir)]) == 0


def test_run_config_missing_file(tmp_path, capsys):
    assert main(["run-config", "--config", str(tmp_path / "missing.yaml"), "--out", str(tmp_path / "o")]) == 2
    assert "Config not found" in capsys.readouterr().err
