from __future__ import annotations

import argparse
import json
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from anitrack_backend.config import Settings, load_settings
from anitrack_backend.jobs.runtime import Runtime, build_runtime
from anitrack_backend.notifications.channels import MappingOwnerDirectory, parse_owner_emails_json_env
from anitrack_backend.utils.env import load_env
from anitrack_backend.utils.logging import setup_logging


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--database-url", default=None, help="Override ANITRACK_DB_URL / DATABASE_URL / DB_PATH.")
    parser.add_argument("--seed", action="store_true", help="Seed demo local shows when the catalog is empty.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")


def load_env_and_settings(args: argparse.Namespace) -> Settings:
    load_env()
    settings = load_settings()
    if getattr(args, "database_url", None):
        settings = replace(settings, database_url=str(args.database_url))
    setup_logging("DEBUG" if getattr(args, "verbose", False) else settings.log_level)
    return settings


def load_env_and_runtime(args: argparse.Namespace) -> tuple[Settings, Runtime]:
    settings = load_env_and_settings(args)
    emails = parse_owner_emails_json_env()
    owner_directory = MappingOwnerDirectory(emails) if emails else None
    runtime = build_runtime(settings, owner_directory=owner_directory, seed=bool(getattr(args, "seed", False)))
    return settings, runtime


def parse_now(value: str | None) -> datetime | None:
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))
