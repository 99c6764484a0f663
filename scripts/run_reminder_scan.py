#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from scripts._jobs_common import add_common_args, load_env_and_runtime, parse_now  # noqa: E402


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="run_reminder_scan",
        description="Run one reminder dispatch scan and send whatever is due.",
    )
    add_common_args(parser)
    parser.add_argument(
        "--now",
        default=None,
        help="Scan as of this ISO timestamp (UTC if no offset). Defaults to the current time.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    _settings, runtime = load_env_and_runtime(args)

    summary = runtime.scheduler.run_dispatch_now(parse_now(args.now))
    print(
        "REMINDERS summary "
        f"due={summary.due_pairs} "
        f"sent={summary.sent} "
        f"already_sent={summary.already_sent} "
        f"failed={summary.failed} "
        f"no_target={summary.no_target}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
