from __future__ import annotations

import os

from .errors import ConfigurationError
from .util import read_json


def gitignore_path(cwd: str) -> str:
    return os.path.join(cwd, ".gitignore")


def package_json_path(cwd: str) -> str:
    return os.path.join(cwd, "package.json")


def read_gitignore(cwd: str) -> list[str]:
    path = gitignore_path(cwd)
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        lines = [line.rstrip("\n") for line in f]
    return [line for line in lines if line.strip() and not line.lstrip().startswith("#")]


def npm_start_script(cwd: str) -> str | None:
    try:
        data = read_json(package_json_path(cwd))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    scripts = data.get("scripts")
    if not isinstance(scripts, dict):
        return None
    start = scripts.get("start")
    return start if isinstance(start, str) and start.strip() else None


def resolve(cwd: str, path: str) -> str:
    return os.path.normpath(os.path.join(cwd, os.path.expanduser(path)))


def grace_period_override() -> float | None:
    raw = os.getenv("BIGEYE_GRACE_PERIOD")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"invalid BIGEYE_GRACE_PERIOD: {raw!r}") from None
