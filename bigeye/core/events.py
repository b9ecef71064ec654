from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class ChangeKind(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    path: str
    timestamp: float = field(default_factory=time.monotonic)


EXECUTING = "executing"
CHANGES = "changes"
SUCCESS = "success"
FAILURE = "failure"
KILLED = "killed"

EVENTS = (EXECUTING, CHANGES, SUCCESS, FAILURE, KILLED)

Listener = Callable[..., Any]


class EventEmitter:
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENTS}

    def _check(self, name: str) -> None:
        if name not in self._listeners:
            raise ValueError(f"unknown event: {name!r} (expected one of {', '.join(EVENTS)})")

    def on(self, name: str, callback: Listener) -> Listener:
        self._check(name)
        self._listeners[name].append(callback)
        return callback

    def off(self, name: str, callback: Listener) -> None:
        self._check(name)
        try:
            self._listeners[name].remove(callback)
        except ValueError:
            pass

    def emit(self, name: str, *payload: Any) -> None:
        self._check(name)
        for callback in list(self._listeners[name]):
            callback(*payload)
