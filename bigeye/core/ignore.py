from __future__ import annotations

import os
from typing import Iterable

import pathspec

from .errors import ConfigurationError

ALWAYS_IGNORED = (".git/",)


class IgnoreRules:
    """gitignore-style matching, relative to ``cwd``; absolute entries match as path prefixes."""

    def __init__(self, patterns: Iterable[str] = (), cwd: str | None = None):
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.patterns = tuple(patterns)
        self._prefixes: list[str] = []
        lines = list(ALWAYS_IGNORED)
        for pattern in self.patterns:
            if os.path.isabs(pattern):
                self._prefixes.append(os.path.normpath(pattern))
            else:
                lines.append(pattern)
        try:
            self._spec = pathspec.GitIgnoreSpec.from_lines(lines)
        except ValueError as exc:
            raise ConfigurationError(f"invalid ignore pattern: {exc}") from exc

    def matches(self, path: str) -> bool:
        absolute = os.path.normpath(os.path.join(self.cwd, path))
        for prefix in self._prefixes:
            if absolute == prefix or absolute.startswith(prefix.rstrip(os.sep) + os.sep):
                return True
        rel = os.path.relpath(absolute, self.cwd)
        if rel == os.curdir:
            return False
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            rel = absolute.lstrip(os.sep)
        return self._spec.match_file(rel.replace(os.sep, "/"))
