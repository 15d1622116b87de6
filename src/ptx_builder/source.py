"""Locate a kernel package and resolve where the toolchain writes its output."""

from __future__ import annotations

import fnmatch
import hashlib
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from ptx_builder.errors import ManifestNotFoundError, OutputPathUnavailableError
from ptx_builder.guard import environment_snapshot

MANIFEST_NAME = "Cargo.toml"
LOCK_NAME = "Cargo.lock"
OUTPUT_NAMESPACE = "ptx-builder-0.5"

# How many parent directories above the given path are searched for a manifest.
MAX_MANIFEST_DEPTH = 2

# Consulted in order, the same variables the platform temp-dir lookup reads.
TEMP_VARIABLES = ("TMPDIR", "TEMP", "TMP")
POSIX_TEMP_DIR = "/tmp"

_DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


@dataclass(frozen=True, slots=True)
class SourcePackage:
    name: str
    root_path: Path
    manifest_path: Path
    lock_path: Path
    output_root: Path
    lib_name: str | None = None
    workspace_root: Path | None = None

    @classmethod
    def analyze(cls, path: str | Path) -> SourcePackage:
        """Describe the package at or above *path*; creates nothing on disk."""
        manifest_path = find_manifest(Path(path))
        root_path = manifest_path.parent
        manifest = _read_manifest(manifest_path)

        package = manifest.get("package")
        if not isinstance(package, dict) or not isinstance(package.get("name"), str):
            raise OutputPathUnavailableError(
                "Manifest does not describe a single package.",
                hint="Point the builder at a member package, not a virtual workspace root.",
                context={"operation": "analyze", "manifest": str(manifest_path)},
            )

        name = package["name"]
        lib = manifest.get("lib")
        lib_name = lib.get("name") if isinstance(lib, dict) else None
        if lib_name is None and (isinstance(lib, dict) or (root_path / "src" / "lib.rs").exists()):
            lib_name = name

        workspace_root = find_workspace_root(root_path, manifest)
        return cls(
            name=name,
            root_path=root_path,
            manifest_path=manifest_path,
            lock_path=(workspace_root or root_path) / LOCK_NAME,
            output_root=output_root_for(name, root_path),
            lib_name=lib_name,
            workspace_root=workspace_root,
        )

    @property
    def has_library(self) -> bool:
        return self.lib_name is not None

    @property
    def artifact_stem(self) -> str:
        """File stem of the produced assembly, as the compiler names it."""
        return (self.lib_name or self.name).replace("-", "_")


def find_manifest(path: Path) -> Path:
    """Return the absolute path of the closest manifest at or above *path*."""
    try:
        start = path.resolve(strict=True)
    except OSError as exc:
        raise ManifestNotFoundError(
            "Package path does not exist.",
            hint="Pass the directory that contains Cargo.toml.",
            context={"operation": "analyze", "path": str(path)},
        ) from exc

    if start.is_file():
        start = start.parent

    for candidate in [start, *start.parents][: MAX_MANIFEST_DEPTH + 1]:
        manifest_path = candidate / MANIFEST_NAME
        if manifest_path.is_file():
            return manifest_path

    raise ManifestNotFoundError(
        f"No {MANIFEST_NAME} found.",
        hint=f"Place {MANIFEST_NAME} in the package root.",
        context={"operation": "analyze", "path": str(start)},
    )


def find_workspace_root(root_path: Path, manifest: Mapping[str, object]) -> Path | None:
    """Return the root of the workspace the package belongs to.

    ``None`` means the package stands alone and keeps its own lock file. A
    package that sits below a workspace without being one of its members (or
    excluded from it) cannot be built by cargo, so it is rejected here.
    """
    if isinstance(manifest.get("workspace"), dict):
        return root_path

    package = manifest.get("package")
    declared = package.get("workspace") if isinstance(package, dict) else None
    if isinstance(declared, str):
        candidates = [(root_path / declared).resolve()]
    else:
        candidates = list(root_path.parents)

    for candidate in candidates:
        candidate_manifest = candidate / MANIFEST_NAME
        if not candidate_manifest.is_file():
            continue
        root_manifest = _read_manifest(candidate_manifest)
        workspace = root_manifest.get("workspace")
        if not isinstance(workspace, dict):
            continue
        if _is_excluded(root_path, candidate, workspace):
            return None
        if _is_member(root_path, candidate, workspace, root_manifest):
            return candidate
        raise OutputPathUnavailableError(
            "Package lies inside a workspace that does not list it.",
            hint="Add the package to [workspace].members or [workspace].exclude.",
            context={
                "operation": "analyze",
                "package": str(root_path),
                "workspace": str(candidate_manifest),
            },
        )

    if isinstance(declared, str):
        raise OutputPathUnavailableError(
            "Declared workspace root has no [workspace] manifest.",
            hint="Fix package.workspace in the package manifest.",
            context={"operation": "analyze", "package": str(root_path), "workspace": declared},
        )
    return None


def output_root_for(name: str, root_path: Path) -> Path:
    """Deterministic toolchain output directory keyed by package identity."""
    digest = hashlib.sha256(str(root_path).encode("utf-8")).hexdigest()[:16]
    return temp_root(name) / OUTPUT_NAMESPACE / f"{name}-{digest}"


def temp_root(name: str) -> Path:
    """Base directory for toolchain output, read from the environment only."""
    environ = environment_snapshot()
    for variable in TEMP_VARIABLES:
        value = environ.get(variable)
        if value:
            return Path(value)
    if os.name == "posix":
        return Path(POSIX_TEMP_DIR)
    raise OutputPathUnavailableError(
        "No usable temporary directory for toolchain output.",
        hint="Set TMPDIR to a writable directory.",
        context={"operation": "analyze", "package": name},
    )


def _is_excluded(root_path: Path, workspace_root: Path, workspace: Mapping[str, object]) -> bool:
    for entry in _string_list(workspace.get("exclude")):
        excluded = (workspace_root / entry).resolve()
        if root_path == excluded or excluded in root_path.parents:
            return True
    return False


def _is_member(
    root_path: Path,
    workspace_root: Path,
    workspace: Mapping[str, object],
    manifest: Mapping[str, object],
) -> bool:
    try:
        relative = root_path.relative_to(workspace_root)
    except ValueError:
        relative = None
    if relative is not None:
        for pattern in _string_list(workspace.get("members")):
            if _glob_matches(relative.parts, PurePosixPath(pattern).parts):
                return True

    # Path dependencies of the root package join the workspace implicitly.
    if not isinstance(manifest.get("package"), dict):
        return False
    for table_name in _DEPENDENCY_TABLES:
        table = manifest.get(table_name)
        if not isinstance(table, dict):
            continue
        for spec in table.values():
            if isinstance(spec, dict) and isinstance(spec.get("path"), str):
                if (workspace_root / spec["path"]).resolve() == root_path:
                    return True
    return False


def _glob_matches(parts: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    if len(parts) != len(pattern):
        return False
    return all(fnmatch.fnmatchcase(part, glob) for part, glob in zip(parts, pattern))


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _read_manifest(path: Path) -> dict[str, object]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise OutputPathUnavailableError(
            "Manifest could not be read.",
            hint="Fix the manifest syntax.",
            context={"operation": "analyze", "manifest": str(path), "error": str(exc)},
        ) from exc
