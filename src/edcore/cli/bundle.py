from __future__ import annotations

import json
import os
import platform
import sys
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path
from typing import Any

DIST_NAME = "experiment-design-core"


def package_version() -> str | None:
    try:
        return pkg_version(DIST_NAME)
    except PackageNotFoundError:
        return None


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def safe_json(obj: Any) -> Any:
    """
    Make an object JSON-serializable (best-effort).
    """
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (list, tuple)):
        return [safe_json(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): safe_json(v) for k, v in obj.items()}
    if hasattr(obj, "to_dict"):
        return safe_json(obj.to_dict())
    if is_dataclass(obj):
        return safe_json(asdict(obj))
    if hasattr(obj, "__dict__"):
        return safe_json(vars(obj))
    return str(obj)


def dumps(payload: Any) -> str:
    return json.dumps(safe_json(payload), ensure_ascii=False, indent=2)


def prepare_out_dir(out: str | None, command: str) -> Path:
    if out is None or str(out).strip() == "":
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        out_dir = Path("results") / command / ts
    else:
        out_dir = Path(out)

    out_dir.mkdir(parents=True, exist_ok=True)
    for sub in ("tables", "plots"):
        (out_dir / sub).mkdir(parents=True, exist_ok=True)
    return out_dir


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(payload) + "\n", encoding="utf-8")


def write_run_meta(out_dir: Path, args: Any, extra: dict[str, Any] | None = None) -> None:
    if isinstance(args, dict):
        args_dict = dict(args)
    else:
        # argparse.Namespace / SimpleNamespace
        args_dict = dict(vars(args))

    # Remove argparse dispatch function pointer if present
    args_dict.pop("func", None)

    meta: dict[str, Any] = {
        "timestamp_utc": _now_utc_iso(),
        "edcore_version": package_version(),
        "python_version": sys.version,
        "platform": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
            "python_implementation": platform.python_implementation(),
        },
        "cwd": os.getcwd(),
        "args": safe_json(args_dict),
    }
    if extra:
        meta["extra"] = safe_json(extra)

    write_json(out_dir / "run_meta.json", meta)


def write_results_json(out_dir: Path, payload: dict[str, Any]) -> None:
    write_json(out_dir / "results.json", payload)


def write_table(out_dir: Path, name: str, df) -> str:
    """
    Writes tables/<name>.csv and returns relative path for artifacts registry.
    """
    rel = Path("tables") / f"{name}.csv"
    path = out_dir / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return str(rel).replace("\\", "/")


def save_plot(out_dir: Path, name: str, fig=None, dpi: int = 140) -> str:
    """
    Saves plots/<name>.png and returns relative path for artifacts registry.
    If fig is None, saves current matplotlib figure.
    """
    rel = Path("plots") / f"{name}.png"
    path = out_dir / rel
    path.parent.mkdir(parents=True, exist_ok=True)

    import matplotlib.pyplot as plt  # local import to keep import-time light

    if fig is None:
        fig = plt.gcf()
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return str(rel).replace("\\", "/")
