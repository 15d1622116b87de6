"""Core typed dataclasses for build configuration and build outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ptx_builder.output import Output

DEFAULT_TARGET = "nvptx64-nvidia-cuda"
DEFAULT_TOOL = "cargo"
ASSEMBLY_EXTENSION = "ptx"
DEP_INFO_EXTENSION = "d"


class Profile(StrEnum):
    """Build mode; the value doubles as the output directory name."""

    RELEASE = "release"
    DEBUG = "debug"


class BuilderState(StrEnum):
    CONFIGURED = "configured"
    GUARDED = "guarded"
    INVOKING = "invoking"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Settings applied to a single toolchain invocation.

    ``timeout`` is in seconds; ``None`` lets the toolchain run to completion.
    """

    profile: Profile = Profile.RELEASE
    color: bool = True
    tool: str = DEFAULT_TOOL
    target: str = DEFAULT_TARGET
    timeout: float | None = None


@dataclass(frozen=True, slots=True)
class Success:
    output: Output


@dataclass(frozen=True, slots=True)
class NotNeeded:
    """The build was skipped on purpose; there is no artifact."""


BuildStatus = Success | NotNeeded
