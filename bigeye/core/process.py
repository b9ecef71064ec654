from __future__ import annotations

import asyncio
import os
import signal
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import DEFAULT_GRACE_PERIOD
from .errors import KillTimeoutError, SpawnError
from .util import elapsed_ms, now

# Reported as the exit code when the command could not be launched at all.
SPAWN_FAILED = -1


@dataclass(frozen=True)
class ExitResult:
    exit_code: Optional[int]
    signal: Optional[int]
    duration_ms: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def code(self) -> int:
        if self.exit_code is not None:
            return self.exit_code
        return 128 + (self.signal or 0)


class ChildHandle:
    def __init__(self, process: asyncio.subprocess.Process, command: str, started: float):
        self.process = process
        self.command = command
        self.started = started
        self.kill_signal: Optional[int] = None
        self.result: Optional[ExitResult] = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def alive(self) -> bool:
        return self.process.returncode is None

    def __repr__(self) -> str:
        return f"<ChildHandle pid={self.pid} command={self.command!r}>"


class ChildProcessController:
    def __init__(self, grace_period: float = DEFAULT_GRACE_PERIOD):
        self.grace_period = grace_period
        self._live: Optional[ChildHandle] = None

    @property
    def live(self) -> Optional[ChildHandle]:
        return self._live

    async def start(
        self, command: str, args: Iterable[str] = (), cwd: Optional[str] = None
    ) -> ChildHandle:
        if self._live is not None:
            raise RuntimeError(f"child {self._live.pid} is still live; kill it before starting another")
        started = now()
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=cwd,
                start_new_session=True,
            )
        except OSError as exc:
            raise SpawnError(command, exc) from exc
        self._live = ChildHandle(process, command, started)
        return self._live

    async def wait(self, handle: ChildHandle) -> ExitResult:
        returncode = await handle.process.wait()
        if handle.result is None:
            if returncode < 0:
                handle.result = ExitResult(None, -returncode, elapsed_ms(handle.started))
            else:
                handle.result = ExitResult(returncode, None, elapsed_ms(handle.started))
        if self._live is handle:
            self._live = None
        return handle.result

    async def kill(self, handle: ChildHandle, sig: int = signal.SIGTERM) -> ExitResult:
        if self._exited(handle) or not self._send(handle, sig):
            return await self.wait(handle)
        handle.kill_signal = sig
        try:
            return await asyncio.wait_for(asyncio.shield(self.wait(handle)), self.grace_period)
        except asyncio.TimeoutError:
            pass
        handle.kill_signal = signal.SIGKILL
        self._send(handle, signal.SIGKILL)
        try:
            return await asyncio.wait_for(asyncio.shield(self.wait(handle)), self.grace_period)
        except asyncio.TimeoutError:
            raise KillTimeoutError(handle.pid, self.grace_period) from None

    def _exited(self, handle: ChildHandle) -> bool:
        if not handle.alive:
            return True
        waitid = getattr(os, "waitid", None)
        if waitid is None:
            return False
        # returncode is only set once the loop processes the reap; peek at
        # the exit status without consuming it.
        try:
            return waitid(os.P_PID, handle.pid, os.WEXITED | os.WNOHANG | os.WNOWAIT) is not None
        except ChildProcessError:
            return True

    def _send(self, handle: ChildHandle, sig: int) -> bool:
        # The child leads its own session, so signal the group to reach
        # anything a shell command spawned.
        try:
            os.killpg(handle.pid, sig)
            return True
        except ProcessLookupError:
            return False
        except PermissionError:
            pass
        try:
            handle.process.send_signal(sig)
        except ProcessLookupError:
            return False
        return True
