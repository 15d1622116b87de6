"""Decide whether a real toolchain build should run in this process.

Two environment markers are consulted:

- ``PTX_CRATE_BUILDING`` is set for every toolchain subprocess this package
  spawns, so build logic triggered from inside that subprocess sees itself
  as nested and skips.
- ``CARGO`` names the build front-end. Code-analysis tools (``rls``,
  ``rust-analyzer``) drive the same entry points without wanting artifacts.

All marker access goes through :func:`environment_lock` so that concurrent
builds in one process observe a consistent environment.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass

RECURSION_MARKER = "PTX_CRATE_BUILDING"
FRONTEND_VARIABLE = "CARGO"
ANALYSIS_TOOLS: tuple[str, ...] = ("rls", "rust-analyzer")

_FALSY_VALUES = frozenset({"", "0", "false", "no", "off"})
_ENVIRONMENT_LOCK = threading.RLock()


@contextmanager
def environment_lock() -> Iterator[None]:
    """Hold the process-wide lock guarding build environment markers."""
    with _ENVIRONMENT_LOCK:
        yield


def environment_snapshot() -> dict[str, str]:
    """Return a consistent copy of ``os.environ``."""
    with _ENVIRONMENT_LOCK:
        return dict(os.environ)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() not in _FALSY_VALUES


@dataclass(frozen=True, slots=True)
class BuildGuard:
    """Evaluates the recursion and analysis-tool markers.

    ``environ`` pins the environment the guard reads; when omitted every call
    takes a fresh snapshot of the process environment.
    """

    environ: Mapping[str, str] | None = None
    analysis_tools: tuple[str, ...] = ANALYSIS_TOOLS

    def _current(self) -> Mapping[str, str]:
        if self.environ is not None:
            return self.environ
        return environment_snapshot()

    def skip_reason(self) -> str | None:
        """Return why the build is skipped, or ``None`` when it should run."""
        environ = self._current()
        if is_truthy(environ.get(RECURSION_MARKER)):
            return "nested build"
        frontend = environ.get(FRONTEND_VARIABLE, "")
        if any(tool in frontend for tool in self.analysis_tools):
            return "code analysis front-end"
        return None

    def is_build_needed(self) -> bool:
        return self.skip_reason() is None


def is_build_needed(environ: Mapping[str, str] | None = None) -> bool:
    """Return ``False`` when the current invocation must not build."""
    return BuildGuard(environ=environ).is_build_needed()
