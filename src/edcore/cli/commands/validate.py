from __future__ import annotations

from edcore.config import load_config
from edcore.validation import collect_config_errors


def cmd_validate(args) -> int:
    try:
        cfg = load_config(args.config)
    except ValueError as e:
        errors = [str(e)]
    else:
        errors = collect_config_errors(cfg)

    if errors:
        print("INVALID")
        for e in errors:
            print("-", e)
        return 2

    print("OK")
    return 0
