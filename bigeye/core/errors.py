from __future__ import annotations


class BigEyeError(Exception):
    """Base class for supervisor errors."""


class ConfigurationError(BigEyeError):
    """Raised when the supervisor is constructed with invalid settings."""


class SpawnError(BigEyeError):
    """The child command could not be launched."""

    def __init__(self, command: str, cause: OSError):
        super().__init__(f"failed to launch {command!r}: {cause.strerror or cause}")
        self.command = command
        self.cause = cause


class WatchError(BigEyeError):
    """The filesystem watch subscription could not be established."""


class KillTimeoutError(BigEyeError):
    """The child survived both graceful and forced termination."""

    def __init__(self, pid: int, timeout: float):
        super().__init__(f"child {pid} still alive {timeout:g}s after SIGKILL")
        self.pid = pid
        self.timeout = timeout
