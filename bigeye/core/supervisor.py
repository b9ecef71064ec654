from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Coroutine, Iterable, Mapping, Optional, Protocol

from .config import Config, from_options
from .debounce import ChangeDebouncer
from .errors import SpawnError
from .events import (
    CHANGES,
    EXECUTING,
    FAILURE,
    KILLED,
    SUCCESS,
    ChangeEvent,
    EventEmitter,
)
from .ignore import IgnoreRules
from .process import SPAWN_FAILED, ChildHandle, ChildProcessController
from .util import elapsed_ms, now, signal_name


class RunState(Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    AWAITING_CHANGE = "awaiting_change"


class Watcher(Protocol):
    def start(self, callback: Callable[[ChangeEvent], None]) -> None: ...

    def stop(self) -> None: ...


class Supervisor(EventEmitter):
    """Run a command once per debounced batch of filesystem changes.

    All state lives on the event loop that called :meth:`start`. The watcher
    may deliver events from its own thread; they are handed to the loop with
    ``call_soon_threadsafe`` before anything else looks at them.

    Events: ``executing()``, ``changes(kind, path)``, ``success(ms)``,
    ``failure(ms, code)`` and ``killed(signal)``.
    """

    def __init__(
        self,
        config: Config,
        controller: Optional[ChildProcessController] = None,
        watcher: Optional[Watcher] = None,
    ):
        super().__init__()
        self.config = config
        self.ignore = IgnoreRules(config.ignore, config.cwd)
        self.controller = controller or ChildProcessController(config.grace_period)
        if watcher is None:
            from ..watcher import FileWatcher

            watcher = FileWatcher(config.watch, self.ignore)
        self.watcher = watcher
        self.state = RunState.IDLE
        self.last_error: Optional[BaseException] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._debouncer: Optional[ChangeDebouncer] = None
        self._monitor: Optional[asyncio.Task] = None
        self._restarting = False
        self._closed = False
        self._tasks: set[asyncio.Task] = set()
        self._done: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self._loop is not None and not self._closed

    @property
    def child(self) -> Optional[ChildHandle]:
        return self.controller.live

    async def start(self) -> None:
        if self._loop is not None:
            raise RuntimeError("supervisor already started")
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._done = loop.create_future()
        self._debouncer = ChangeDebouncer(
            self.config.delay, self.ignore, clock=loop.time, scheduler=loop.call_at
        )
        self._debouncer.on_trigger(self._on_trigger)
        self.watcher.start(self._notify_threadsafe)
        if self.config.lazy:
            self.state = RunState.AWAITING_CHANGE
        else:
            self._restart()

    async def run(self) -> None:
        await self.start()
        assert self._done is not None
        try:
            await self._done
        finally:
            await self.close()

    async def close(self) -> None:
        if self._closed or self._loop is None:
            self._closed = True
            return
        self._closed = True
        self.watcher.stop()
        if self._debouncer is not None:
            self._debouncer.cancel()
        in_flight = [task for task in self._tasks if task is not self._monitor]
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)
        monitor = self._monitor
        handle = self.controller.live
        if handle is not None:
            await self.controller.kill(handle)
        if monitor is not None:
            await asyncio.gather(monitor, return_exceptions=True)
        self.state = RunState.IDLE
        if self._done is not None and not self._done.done():
            self._done.set_result(None)

    def notify(self, event: ChangeEvent) -> bool:
        if self._closed or self._debouncer is None:
            return False
        return self._debouncer.observe(event)

    def _notify_threadsafe(self, event: ChangeEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.notify, event)
        except RuntimeError:
            # loop shut down between the check and the call
            pass

    def _on_trigger(self, event: ChangeEvent) -> None:
        self.emit(CHANGES, event.kind.value, event.path)
        if self._restarting or self._closed:
            return
        self._restart()

    def _restart(self) -> None:
        self._restarting = True
        self._spawn(self._cycle())

    async def _cycle(self) -> None:
        try:
            monitor = self._monitor
            if monitor is not None:
                handle = self.controller.live
                if handle is not None:
                    await self.controller.kill(handle)
                await monitor
            if not self._closed:
                await self._execute()
        finally:
            self._restarting = False

    async def _execute(self) -> None:
        self.state = RunState.EXECUTING
        self.emit(EXECUTING)
        started = now()
        try:
            handle = await self.controller.start(
                self.config.command, self.config.args, cwd=self.config.cwd
            )
        except SpawnError as exc:
            self.last_error = exc
            self.state = RunState.AWAITING_CHANGE
            self.emit(FAILURE, elapsed_ms(started), SPAWN_FAILED)
            return
        self._monitor = self._spawn(self._watch_exit(handle))

    async def _watch_exit(self, handle: ChildHandle) -> None:
        try:
            result = await self.controller.wait(handle)
        finally:
            if self._monitor is asyncio.current_task():
                self._monitor = None
        self.state = RunState.AWAITING_CHANGE
        if handle.kill_signal is not None:
            self.emit(KILLED, signal_name(handle.kill_signal))
        elif result.ok:
            self.emit(SUCCESS, result.duration_ms)
        else:
            self.emit(FAILURE, result.duration_ms, result.code)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        assert self._loop is not None
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self.last_error = exc
        if self._done is not None and not self._done.done():
            self._done.set_exception(exc)


def create_supervisor(
    command: str,
    args: Iterable[str] = (),
    options: Optional[Mapping[str, Any]] = None,
    controller: Optional[ChildProcessController] = None,
    watcher: Optional[Watcher] = None,
) -> Supervisor:
    config = from_options(command, args, options or {})
    return Supervisor(config, controller=controller, watcher=watcher)
