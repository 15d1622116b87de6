"""Read-only view of a finished build's artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ptx_builder.errors import SourceFilesUnavailableError
from ptx_builder.models import ASSEMBLY_EXTENSION, DEFAULT_TARGET, DEP_INFO_EXTENSION, Profile
from ptx_builder.source import SourcePackage


@dataclass(frozen=True, slots=True)
class Output:
    package: SourcePackage
    profile: Profile
    target: str = DEFAULT_TARGET

    @property
    def artifact_dir(self) -> Path:
        return self.package.output_root / self.target / self.profile.value

    def get_assembly_path(self) -> Path:
        return self.artifact_dir / f"{self.package.artifact_stem}.{ASSEMBLY_EXTENSION}"

    def get_dep_info_path(self) -> Path:
        return self.artifact_dir / f"{self.package.artifact_stem}.{DEP_INFO_EXTENSION}"

    def source_files(self) -> set[Path]:
        """Every compilation input of the package, plus its manifest and lock file.

        The lock file is the workspace root's for a workspace member.

        Inputs come from the dep-info file the compiler writes beside the
        assembly.
        """
        dep_info = self.get_dep_info_path()
        try:
            contents = dep_info.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceFilesUnavailableError(
                "The toolchain did not report the package's source files.",
                hint="Rebuild the package; the dep-info file is written by a successful build.",
                context={"operation": "source_files", "path": str(dep_info)},
            ) from exc

        sources = {
            _absolute(path, self.package.root_path)
            for path in parse_dep_info(contents)
        }
        sources.add(self.package.manifest_path)
        if self.package.lock_path.exists():
            sources.add(self.package.lock_path)
        return sources


def parse_dep_info(contents: str) -> list[str]:
    """Return the prerequisites listed in a Makefile-style dep-info file.

    Rules with no prerequisites (the phony entries rustc appends) add nothing.
    """
    prerequisites: list[str] = []
    for line in _join_continuations(contents):
        if not line.strip() or line.startswith("#"):
            continue
        words = _split_words(line)
        if not words or not words[0].endswith(":"):
            continue
        for word in words[1:]:
            if word not in prerequisites:
                prerequisites.append(word)
    return prerequisites


def _join_continuations(contents: str) -> list[str]:
    lines: list[str] = []
    pending = ""
    for raw in contents.splitlines():
        if raw.endswith("\\") and not raw.endswith("\\\\"):
            pending += raw[:-1] + " "
            continue
        lines.append(pending + raw)
        pending = ""
    if pending:
        lines.append(pending)
    return lines


def _split_words(line: str) -> list[str]:
    """Split on unescaped whitespace; ``\\ `` is a literal space."""
    words: list[str] = []
    current: list[str] = []
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\" and index + 1 < len(line) and line[index + 1] == " ":
            current.append(" ")
            index += 2
            continue
        if char.isspace():
            if current:
                words.append("".join(current))
                current = []
        else:
            current.append(char)
        index += 1
    if current:
        words.append("".join(current))
    return words


def _absolute(path: str, root: Path) -> Path:
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = root / candidate
    return candidate.resolve()
