"""Build GPU kernel packages to PTX assembly from a host build."""

from .builder import Builder
from .diagnostics import parse as parse_diagnostics
from .errors import (
    BuildFailedError,
    ConfigurationError,
    ErrorCode,
    ManifestNotFoundError,
    OutputPathUnavailableError,
    ProcessSpawnFailedError,
    PtxBuilderError,
    SourceFilesUnavailableError,
)
from .guard import BuildGuard, environment_lock, is_build_needed
from .host import HostIntegration, HostReport, format_failure
from .models import BuildConfig, BuilderState, BuildStatus, NotNeeded, Profile, Success
from .observability import StructuredLogger
from .output import Output
from .runner import CommandResult, ProcessRunner
from .source import SourcePackage

__version__ = "0.5.0"

__all__ = [
    "BuildConfig",
    "BuildFailedError",
    "BuildGuard",
    "BuildStatus",
    "Builder",
    "BuilderState",
    "CommandResult",
    "ConfigurationError",
    "ErrorCode",
    "HostIntegration",
    "HostReport",
    "ManifestNotFoundError",
    "NotNeeded",
    "Output",
    "OutputPathUnavailableError",
    "ProcessRunner",
    "ProcessSpawnFailedError",
    "Profile",
    "PtxBuilderError",
    "SourceFilesUnavailableError",
    "SourcePackage",
    "StructuredLogger",
    "Success",
    "environment_lock",
    "format_failure",
    "is_build_needed",
    "parse_diagnostics",
]
