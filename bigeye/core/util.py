from __future__ import annotations

import json
import os
import signal
import time
from typing import Iterable


def read_json(path: str) -> dict | None:
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def split_csv(values: Iterable[str] | None) -> list[str]:
    out: list[str] = []
    for value in values or ():
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out


def now() -> float:
    return time.monotonic()


def elapsed_ms(started: float, ended: float | None = None) -> int:
    end = time.monotonic() if ended is None else ended
    return max(0, int(round((end - started) * 1000)))


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"
