from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def load_env(*, override: bool = False) -> Path | None:
    repo_root = Path(__file__).resolve().parents[2]
    candidates = [
        repo_root / ".env",
        Path.cwd() / ".env",
    ]
    for path in candidates:
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            return path
    return None


def env_str(environ: Mapping[str, str], name: str, default: str = "") -> str:
    value = (environ.get(name) or "").strip()
    return value or default


def env_int(
    environ: Mapping[str, str],
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    """
    Read an integer env var, falling back to `default` when unset or unparsable.

    The result is clamped to [minimum, maximum] when bounds are given.
    """

    raw = (environ.get(name) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = (environ.get(name) or "").strip()
    try:
        value = float(raw) if raw else default
    except ValueError:
        return default
    return value if value > 0 else default


def env_bool(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = (environ.get(name) or "").strip().casefold()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default
