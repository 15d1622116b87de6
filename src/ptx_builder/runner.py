"""Invoke the cargo toolchain for a kernel package and capture its transcript."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass

from ptx_builder.errors import ProcessSpawnFailedError
from ptx_builder.guard import RECURSION_MARKER, environment_snapshot
from ptx_builder.models import BuildConfig, Profile
from ptx_builder.source import SourcePackage

TARGET_DIR_VARIABLE = "CARGO_TARGET_DIR"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status plus stdout and stderr interleaved in emission order."""

    command: tuple[str, ...]
    returncode: int
    output: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


@dataclass(slots=True)
class ProcessRunner:
    environ: Mapping[str, str] | None = None

    def command(self, package: SourcePackage, config: BuildConfig) -> tuple[str, ...]:
        flags: list[str] = []
        if package.has_library:
            flags.append("--lib")
        if config.profile is Profile.RELEASE:
            flags.append("--release")
        return (
            config.tool,
            "rustc",
            *flags,
            "--target",
            config.target,
            f"--color={'always' if config.color else 'never'}",
            "--",
            "--crate-type",
            "cdylib",
        )

    def environment(self, package: SourcePackage) -> dict[str, str]:
        """Environment block for the subprocess only; ``os.environ`` is untouched."""
        env = dict(self.environ) if self.environ is not None else environment_snapshot()
        env[RECURSION_MARKER] = "1"
        env[TARGET_DIR_VARIABLE] = str(package.output_root)
        return env

    def run(self, package: SourcePackage, config: BuildConfig) -> CommandResult:
        command = self.command(package, config)
        try:
            process = subprocess.Popen(
                list(command),
                cwd=str(package.root_path),
                env=self.environment(package),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            raise ProcessSpawnFailedError(
                f"Unable to launch {config.tool}.",
                hint="Install the Rust toolchain and make sure cargo is on PATH.",
                context={
                    "operation": "run",
                    "command": shlex.join(command),
                    "error": str(exc),
                },
            ) from exc

        try:
            output, _ = process.communicate(timeout=config.timeout)
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise ProcessSpawnFailedError(
                f"{config.tool} did not finish within {config.timeout} seconds.",
                hint="Raise the build timeout or check for a hung toolchain.",
                context={"operation": "run", "command": shlex.join(command)},
            ) from exc

        # Decoded by hand so carriage returns in progress output survive.
        text = output.decode("utf-8", errors="replace") if output else ""
        return CommandResult(command=command, returncode=process.returncode, output=text)
