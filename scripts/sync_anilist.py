#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from anitrack_backend.integrations.anilist.client import AniListClientError  # noqa: E402
from scripts._jobs_common import add_common_args, load_env_and_runtime, print_json  # noqa: E402


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sync_anilist",
        description="Run one AniList airing-schedule reconciliation into the catalog.",
    )
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    _settings, runtime = load_env_and_runtime(args)

    try:
        summary = runtime.scheduler.run_reconciliation_now()
    except AniListClientError as exc:
        print(f"ANILIST sync failed: {exc}", file=sys.stderr)
        if exc.body_snippet:
            print(f"- body: {exc.body_snippet}", file=sys.stderr)
        return 1
    except Exception as exc:  # noqa: BLE001
        print(f"ANILIST sync failed: {exc}", file=sys.stderr)
        return 1

    print(
        "ANILIST summary "
        f"fetched={summary.fetched_count} "
        f"shows={summary.upserted_shows} "
        f"episodes={summary.upserted_episodes} "
        f"skipped={summary.skipped_items} "
        f"conflicts={summary.conflicts}"
    )
    if args.verbose:
        print_json(summary.to_dict())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
