"""Structured build logging helpers."""

from __future__ import annotations

import json
import shlex
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StructuredLogger:
    """In-memory build log with one record per phase transition.

    The guard, invoke and exit helpers write the records :class:`Builder`
    emits, so a host can later ask which commands ran and why a build was
    skipped without parsing message strings.
    """

    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        phase: str | None,
        package: str | None,
        profile: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "phase": phase,
            "package": package,
            "profile": profile,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    def log_guard_decision(self, *, profile: str, skip_reason: str | None) -> None:
        if skip_reason is None:
            message = "Build needed."
        else:
            message = f"Build skipped: {skip_reason}."
        self.log(
            operation="build",
            phase="guard",
            package=None,
            profile=profile,
            message=message,
            extra={"needed": skip_reason is None, "reason": skip_reason},
        )

    def log_command(self, *, package: str, profile: str, command: Sequence[str]) -> None:
        self.log(
            operation="build",
            phase="invoke",
            package=package,
            profile=profile,
            message="Invoking toolchain.",
            extra={"command": shlex.join(command), "argv": list(command)},
        )

    def log_exit(self, *, package: str, profile: str, returncode: int, output: str) -> None:
        self.log(
            operation="build",
            phase="invoke",
            package=package,
            profile=profile,
            message=f"Toolchain exited with status {returncode}.",
            level="info" if returncode == 0 else "error",
            extra={"returncode": returncode, "output_bytes": len(output.encode("utf-8"))},
        )

    def records_for_phase(self, phase: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("phase") == phase]

    def records_for_package(self, package: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("package") == package]

    def commands(self) -> list[tuple[str, ...]]:
        """Argument vectors of every toolchain invocation, oldest first."""
        return [
            tuple(record["extra"]["argv"])
            for record in self.records_for_phase("invoke")
            if "argv" in record.get("extra", {})
        ]

    def skip_reasons(self) -> list[str]:
        return [
            record["extra"]["reason"]
            for record in self.records_for_phase("guard")
            if record.get("extra", {}).get("needed") is False
        ]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
