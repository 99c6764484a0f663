#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from scripts._jobs_common import add_common_args, load_env_and_runtime, print_json  # noqa: E402


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sync_status",
        description="Print the last reconciliation outcome per upstream source.",
    )
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    _settings, runtime = load_env_and_runtime(args)
    statuses = runtime.scheduler.list_sync_status()
    print_json({source: status.to_dict() for source, status in statuses.items()})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
