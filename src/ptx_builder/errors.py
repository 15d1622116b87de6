"""Typed build error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the builder API."""

    MANIFEST_NOT_FOUND = "E_MANIFEST_NOT_FOUND"
    OUTPUT_PATH = "E_OUTPUT_PATH"
    PROCESS_SPAWN = "E_PROCESS_SPAWN"
    BUILD_FAILED = "E_BUILD_FAILED"
    SOURCE_FILES = "E_SOURCE_FILES"
    CONFIGURATION = "E_CONFIGURATION"


class PtxBuilderError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ManifestNotFoundError(PtxBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.MANIFEST_NOT_FOUND, hint=hint, context=context)


class OutputPathUnavailableError(PtxBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.OUTPUT_PATH, hint=hint, context=context)


class ProcessSpawnFailedError(PtxBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PROCESS_SPAWN, hint=hint, context=context)


class BuildFailedError(PtxBuilderError):
    """The toolchain ran and exited non-zero.

    ``diagnostics`` is the toolchain transcript, one entry per emitted line,
    in emission order.
    """

    diagnostics: tuple[str, ...]

    def __init__(
        self,
        message: str,
        *,
        diagnostics: Sequence[str],
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.BUILD_FAILED, hint=hint, context=context)
        self.diagnostics = tuple(diagnostics)

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["diagnostics"] = list(self.diagnostics)
        return payload


class SourceFilesUnavailableError(PtxBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SOURCE_FILES, hint=hint, context=context)


class ConfigurationError(PtxBuilderError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIGURATION, hint=hint, context=context)


__all__ = [
    "BuildFailedError",
    "ConfigurationError",
    "ErrorCode",
    "ManifestNotFoundError",
    "OutputPathUnavailableError",
    "ProcessSpawnFailedError",
    "PtxBuilderError",
    "SourceFilesUnavailableError",
]
