from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .errors import ConfigurationError

DEFAULT_DELAY_MS = 10
DEFAULT_GRACE_PERIOD = 5.0


@dataclass(frozen=True)
class Config:
    command: str
    args: tuple[str, ...] = ()
    watch: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()
    lazy: bool = False
    delay: int = DEFAULT_DELAY_MS
    quiet: bool = False
    cwd: str = field(default_factory=os.getcwd)
    grace_period: float = DEFAULT_GRACE_PERIOD

    def __post_init__(self) -> None:
        if not isinstance(self.command, str) or not self.command.strip():
            raise ConfigurationError("command must be a non-empty string")
        if isinstance(self.delay, bool) or not isinstance(self.delay, int):
            raise ConfigurationError(f"delay must be an integer number of ms, got {self.delay!r}")
        if self.delay < 0:
            raise ConfigurationError(f"delay must be >= 0, got {self.delay}")
        if not self.watch:
            raise ConfigurationError("at least one watch path is required")
        if self.grace_period <= 0:
            raise ConfigurationError(f"grace period must be > 0, got {self.grace_period}")


def parse_delay(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid delay: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"invalid delay: {value!r}") from None


def _tuple(values: Iterable[str] | str | None) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(values)


def from_options(command: str, args: Iterable[str], options: Mapping[str, Any]) -> Config:
    cwd = options.get("cwd") or os.getcwd()
    raw_watch = options.get("watch")
    watch = (cwd,) if raw_watch is None else _tuple(raw_watch)
    kwargs: dict[str, Any] = {}
    if options.get("grace_period") is not None:
        kwargs["grace_period"] = float(options["grace_period"])
    return Config(
        command=command,
        args=tuple(args),
        watch=watch,
        ignore=_tuple(options.get("ignore")),
        lazy=bool(options.get("lazy", False)),
        delay=parse_delay(options.get("delay", DEFAULT_DELAY_MS)),
        quiet=bool(options.get("quiet", False)),
        cwd=cwd,
        **kwargs,
    )
