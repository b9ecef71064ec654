"""
Output formatting for the eye CLI.
Turns supervisor lifecycle events into one-line status messages.
"""

from __future__ import annotations

import os
import sys
from typing import Callable, Optional, TextIO

from .core.config import Config
from .core.events import CHANGES, EXECUTING, FAILURE, KILLED, SUCCESS, EventEmitter
from .core.process import SPAWN_FAILED

PREFIX = "[eye]"

Log = Callable[[str, str], None]


def log(level: str, message: str, stream: Optional[TextIO] = None) -> None:
    """Print a status line; errors go to stderr, everything else to stdout."""
    if stream is None:
        stream = sys.stderr if level == "error" else sys.stdout
    print(f"{PREFIX} {level}: {message}", file=stream, flush=True)


def quiet_log(level: str, message: str) -> None:
    return None


def display_path(path: str, cwd: str) -> str:
    """Show paths under cwd relative to it, anything else as given."""
    try:
        rel = os.path.relpath(path, cwd)
    except ValueError:
        return path
    if rel.startswith(os.pardir):
        return path
    return rel


def format_command(config: Config) -> str:
    return " ".join([config.command, *config.args])


def format_banner(config: Config) -> str:
    return (
        "starting with config:\n"
        f"\tcommand: {format_command(config)}\n"
        f"\twatch: {', '.join(config.watch)}\n"
        f"\tignore: {', '.join(config.ignore)}"
    )


def format_failure(duration_ms: int, code: int) -> str:
    if code == SPAWN_FAILED:
        return f"command could not be started ({duration_ms}ms), waiting for changes..."
    return f"command exited with code {code} ({duration_ms}ms), waiting for changes..."


def attach(emitter: EventEmitter, config: Config, out: Log = log) -> None:
    """Subscribe status-line printers to all five supervisor events."""
    emitter.on(EXECUTING, lambda: out("info", "executing child..."))
    emitter.on(
        CHANGES,
        lambda kind, path: out(
            "info", f"file changes detected ({kind} {display_path(path, config.cwd)})"
        ),
    )
    emitter.on(
        SUCCESS,
        lambda ms: out(
            "success", f"command exited without error ({ms}ms), waiting for changes..."
        ),
    )
    emitter.on(FAILURE, lambda ms, code: out("error", format_failure(ms, code)))
    emitter.on(KILLED, lambda sig: out("info", f"child killed ({sig})"))
