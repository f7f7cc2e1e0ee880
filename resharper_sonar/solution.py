"""Visual Studio solution layout: path resolution, exclusions, project membership.

ReSharper reports paths relative to the solution directory. A ``Solution``
turns them into absolute paths and tells whether a path is excluded from
analysis; a ``VsProject`` tells whether a path belongs to it.
"""

import glob
import os
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath

SOLUTION_DIR_TOKEN = "$(SolutionDir)"


class ResourceError(ValueError):
    """Raised when a path cannot be reported as a file of the solution."""


def _normalize(path: Path) -> Path:
    # Windows separators appear in reports produced on build agents
    return Path(os.path.normpath(str(path).replace("\\", "/")))


@dataclass(frozen=True)
class VsProject:
    name: str
    directory: Path

    def contains(self, path: Path) -> bool:
        try:
            _normalize(path).relative_to(_normalize(self.directory))
        except ValueError:
            return False
        return True


@dataclass(frozen=True)
class Solution:
    solution_file: Path
    exclusions: tuple[str, ...] = field(default_factory=tuple)

    @property
    def directory(self) -> Path:
        return _normalize(self.solution_file.absolute().parent)

    def resolve(self, relative_path: str) -> Path:
        """Return the absolute path of a report entry."""
        return _normalize(self.directory / relative_path.replace("\\", "/"))

    def relative_path(self, path: Path) -> str:
        """Return *path* relative to the solution directory, POSIX style.

        Raises:
            ResourceError: if *path* lies outside the solution directory.
        """
        try:
            rel = _normalize(path).relative_to(self.directory)
        except ValueError as exc:
            raise ResourceError(
                f"'{path}' is outside the solution directory '{self.directory}'"
            ) from exc
        return PurePosixPath(*rel.parts).as_posix()

    def is_excluded(self, path: Path) -> bool:
        try:
            rel = self.relative_path(path)
        except ResourceError:
            rel = _normalize(path).as_posix()
        return any(fnmatch(rel, pattern) for pattern in self.exclusions)

    def expand(self, pattern: str) -> str:
        """Replace a leading ``$(SolutionDir)`` with the solution directory."""
        if pattern.startswith(SOLUTION_DIR_TOKEN):
            rest = pattern[len(SOLUTION_DIR_TOKEN):].lstrip("/\\")
            return str(self.directory / rest)
        return pattern

    def project(self, name: str, directory: str | Path) -> VsProject:
        return VsProject(name=name, directory=_normalize(self.directory / directory))


def find_files(solution: Solution, project: VsProject, pattern: str) -> list[Path]:
    """Return the files matching *pattern*, sorted.

    A pattern starting with ``$(SolutionDir)`` is relative to the solution
    directory, an absolute pattern is used as-is, anything else is relative
    to the project directory. ``**`` matches across directories.
    """
    pattern = solution.expand(pattern)
    full = pattern if os.path.isabs(pattern) else str(project.directory / pattern)
    return sorted(Path(p) for p in glob.glob(full, recursive=True) if os.path.isfile(p))
