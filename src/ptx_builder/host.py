"""Glue for host build scripts that embed the produced assembly."""

from __future__ import annotations

from dataclasses import dataclass, field

from ptx_builder.builder import Builder
from ptx_builder.errors import BuildFailedError, PtxBuilderError
from ptx_builder.models import Success


@dataclass(frozen=True, slots=True)
class HostReport:
    exports: dict[str, str] = field(default_factory=dict)
    rerun_if_changed: tuple[str, ...] = ()

    def directives(self) -> list[str]:
        """Render the report as cargo build-script directives."""
        lines = [f"cargo:rustc-env={name}={value}" for name, value in sorted(self.exports.items())]
        lines.extend(f"cargo:rerun-if-changed={path}" for path in self.rerun_if_changed)
        return lines


@dataclass(slots=True)
class HostIntegration:
    builder: Builder
    env_name: str = "KERNEL_PTX_PATH"

    def run(self) -> HostReport | None:
        """Build and describe the result; ``None`` when the build was skipped."""
        status = self.builder.build()
        if not isinstance(status, Success):
            return None
        output = status.output
        return HostReport(
            exports={self.env_name: str(output.get_assembly_path())},
            rerun_if_changed=tuple(sorted(str(path) for path in output.source_files())),
        )


def format_failure(error: PtxBuilderError) -> str:
    """Human-readable report for a failed build, transcript included."""
    lines = [f"[{error.code}] {error}"]
    if isinstance(error, BuildFailedError) and error.diagnostics:
        lines.append("")
        lines.append("Diagnostics:")
        lines.extend(f"  {line}" if line else "" for line in error.diagnostics)
    return "\n".join(lines)
