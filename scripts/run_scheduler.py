#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from scripts._jobs_common import add_common_args, load_env_and_runtime  # noqa: E402

logger = logging.getLogger("run_scheduler")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="run_scheduler",
        description="Run the AniList sync and reminder dispatch jobs until interrupted.",
    )
    add_common_args(parser)
    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        default=60.0,
        help="Seconds to wait for in-flight runs on shutdown.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    settings, runtime = load_env_and_runtime(args)

    if settings.disable_startup_jobs:
        logger.info("Scheduler disabled via DISABLE_STARTUP_JOBS")
        return 0

    stop_requested = threading.Event()

    def _handle_signal(signum, _frame) -> None:  # noqa: ANN001
        logger.info(f"Received signal {signum}; shutting down")
        stop_requested.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    runtime.scheduler.start()
    try:
        while not stop_requested.wait(1.0):
            pass
    finally:
        runtime.scheduler.stop(timeout=args.shutdown_timeout)
        runtime.engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
