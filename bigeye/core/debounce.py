from __future__ import annotations

import time
from typing import Any, Callable, Optional

from .events import ChangeEvent
from .ignore import IgnoreRules

TriggerCallback = Callable[[ChangeEvent], None]
Scheduler = Callable[[float, Callable[[], None]], Any]


class ChangeDebouncer:
    """Collapse bursts of change events into one trigger per window.

    The window opens on the first observed event and closes ``delay`` ms
    later; events observed in between are absorbed and do not move the
    deadline. The trigger carries the event that opened the window.

    Without a ``scheduler`` the debouncer never fires by itself and must be
    driven with :meth:`poll`, which is how tests advance a logical clock.
    """

    def __init__(
        self,
        delay: int,
        ignore: Optional[IgnoreRules] = None,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Optional[Scheduler] = None,
    ):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self.ignore = ignore
        self.clock = clock
        self.scheduler = scheduler
        self._callbacks: list[TriggerCallback] = []
        self._deadline: Optional[float] = None
        self._first: Optional[ChangeEvent] = None
        self._absorbed = 0
        self._timer: Any = None

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def absorbed(self) -> int:
        return self._absorbed

    def on_trigger(self, callback: TriggerCallback) -> None:
        self._callbacks.append(callback)

    def observe(self, event: ChangeEvent) -> bool:
        if self.ignore is not None and self.ignore.matches(event.path):
            return False
        if self._deadline is not None:
            self._absorbed += 1
            return True
        self._first = event
        self._absorbed = 0
        self._deadline = self.clock() + self.delay / 1000.0
        if self.scheduler is not None:
            self._timer = self.scheduler(self._deadline, self._expire)
        return True

    def poll(self, now: Optional[float] = None) -> Optional[ChangeEvent]:
        if self._deadline is None:
            return None
        if (self.clock() if now is None else now) < self._deadline:
            return None
        return self._fire()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._reset()

    def _expire(self) -> None:
        self._timer = None
        if self._deadline is not None:
            self._fire()

    def _fire(self) -> ChangeEvent:
        event = self._first
        assert event is not None
        if self._timer is not None:
            self._timer.cancel()
        self._reset()
        for callback in list(self._callbacks):
            callback(event)
        return event

    def _reset(self) -> None:
        self._deadline = None
        self._first = None
        self._absorbed = 0
        self._timer = None
