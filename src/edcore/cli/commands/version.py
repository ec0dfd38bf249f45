from __future__ import annotations

from edcore.cli.bundle import package_version


def cmd_version(args) -> int:
    print(package_version() or "unknown")
    return 0
