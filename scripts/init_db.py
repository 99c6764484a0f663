#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from anitrack_backend.db.connection import create_db_engine  # noqa: E402
from anitrack_backend.db.schema import init_db  # noqa: E402
from scripts._jobs_common import add_common_args, load_env_and_settings  # noqa: E402


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="init_db",
        description="Create the tracker tables (idempotent) and optionally seed demo shows.",
    )
    add_common_args(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    settings = load_env_and_settings(args)
    engine = create_db_engine(settings.database_url)
    seeded = init_db(engine, seed=bool(args.seed))
    print(f"Database ready: {engine.url.render_as_string(hide_password=True)} seeded={seeded}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
