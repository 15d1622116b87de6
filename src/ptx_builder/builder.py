"""Build orchestration: guard, resolve, invoke, and classify the result.

A :class:`Builder` is configured, then consumed by :meth:`Builder.build`::

    status = Builder("kernels").set_profile(Profile.DEBUG).disable_colors().build()
    if isinstance(status, Success):
        embed(status.output.get_assembly_path())
"""

from __future__ import annotations

import dataclasses
import shlex
from pathlib import Path

from ptx_builder import diagnostics
from ptx_builder.errors import BuildFailedError, ConfigurationError, PtxBuilderError
from ptx_builder.guard import BuildGuard, environment_lock
from ptx_builder.models import (
    BuildConfig,
    BuilderState,
    BuildStatus,
    NotNeeded,
    Profile,
    Success,
)
from ptx_builder.observability import StructuredLogger
from ptx_builder.output import Output
from ptx_builder.runner import ProcessRunner
from ptx_builder.source import SourcePackage


class Builder:
    def __init__(
        self,
        path: str | Path,
        *,
        config: BuildConfig | None = None,
        guard: BuildGuard | None = None,
        runner: ProcessRunner | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.path = Path(path)
        self.config = config or BuildConfig()
        self.guard = guard or BuildGuard()
        self.runner = runner or ProcessRunner()
        self.logger = logger or StructuredLogger()
        self.state = BuilderState.CONFIGURED

    @staticmethod
    def is_build_needed() -> bool:
        return BuildGuard().is_build_needed()

    def set_profile(self, profile: Profile) -> Builder:
        return self._configure(profile=Profile(profile))

    def disable_colors(self) -> Builder:
        return self._configure(color=False)

    def set_tool(self, tool: str) -> Builder:
        """Use another cargo-compatible executable."""
        return self._configure(tool=tool)

    def set_timeout(self, seconds: float | None) -> Builder:
        if seconds is not None and seconds <= 0:
            raise ConfigurationError(
                "Build timeout must be positive.",
                context={"operation": "configure", "timeout": str(seconds)},
            )
        return self._configure(timeout=seconds)

    def build(self) -> BuildStatus:
        """Run the toolchain once and return :class:`Success` or :class:`NotNeeded`.

        Raises a :class:`~ptx_builder.errors.PtxBuilderError` subclass on failure.
        """
        self.state = BuilderState.GUARDED
        with environment_lock():
            skip_reason = self.guard.skip_reason()
        self.logger.log_guard_decision(profile=self.config.profile.value, skip_reason=skip_reason)
        if skip_reason is not None:
            self.state = BuilderState.SKIPPED
            return NotNeeded()

        self.state = BuilderState.INVOKING
        try:
            package = SourcePackage.analyze(self.path)
            self._log("resolve", f"Resolved output root {package.output_root}.", package=package)

            profile = self.config.profile.value
            self.logger.log_command(
                package=package.name,
                profile=profile,
                command=self.runner.command(package, self.config),
            )
            result = self.runner.run(package, self.config)
            self.logger.log_exit(
                package=package.name,
                profile=profile,
                returncode=result.returncode,
                output=result.output,
            )

            if not result.succeeded:
                raise BuildFailedError(
                    f"Failed to build {package.name} for {self.config.target}.",
                    diagnostics=diagnostics.parse(result.output),
                    hint="Fix the compiler errors listed in the diagnostics.",
                    context={
                        "operation": "build",
                        "package": package.name,
                        "profile": self.config.profile.value,
                        "returncode": str(result.returncode),
                        "command": shlex.join(result.command),
                    },
                )
        except PtxBuilderError as exc:
            self.state = BuilderState.FAILED
            self._log("failed", exc.message, level="error", extra={"code": exc.code})
            raise

        output = Output(package=package, profile=self.config.profile, target=self.config.target)
        self.state = BuilderState.SUCCEEDED
        self._log("output", f"Assembly at {output.get_assembly_path()}.", package=package)
        return Success(output)

    def _configure(self, **changes: object) -> Builder:
        if self.state is not BuilderState.CONFIGURED:
            raise ConfigurationError(
                "Builder configuration is only allowed before build().",
                context={"operation": "configure", "state": self.state.value},
            )
        self.config = dataclasses.replace(self.config, **changes)
        return self

    def _log(
        self,
        phase: str,
        message: str,
        *,
        package: SourcePackage | None = None,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation="build",
            phase=phase,
            package=package.name if package is not None else None,
            profile=self.config.profile.value,
            message=message,
            level=level,
            extra=extra,
        )
