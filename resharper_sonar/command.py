"""Builds the ReSharper ``inspectcode`` command line for one project.

Usage:
    argv = build_command(
        solution, project,
        executable="C:/jb/inspectcode.exe",
        report_file="out/resharper-report.xml",
        settings_pattern="*.DotSettings",
        extra_args="/no-swea",
    )

Arguments are emitted in a fixed order::

    inspectcode /project=<name> [/profile=<settings>] /output=<report> [extra...] <solution>
"""

import logging
import shlex
from pathlib import Path

from resharper_sonar.solution import Solution, VsProject, find_files

logger = logging.getLogger(__name__)

EXECUTABLE_NAME = "inspectcode.exe"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class CommandError(Exception):
    """Raised when the inspectcode command line cannot be built."""


class AmbiguousSettingsError(CommandError):
    """Raised when more than one file matches the settings file pattern."""


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def executable_path(install_dir: str | None) -> Path:
    """Return the inspectcode executable inside *install_dir*."""
    if not install_dir:
        raise CommandError(
            "ReSharper install directory is not set "
            "(set 'inspectcode.install_dir' or RESHARPER_INSTALL_DIR)"
        )
    return Path(install_dir) / EXECUTABLE_NAME


def resolve_settings_file(
    solution: Solution, project: VsProject, pattern: str | None
) -> Path | None:
    """Return the single settings file matching *pattern*, or None.

    Raises:
        AmbiguousSettingsError: if the pattern matches several files.
    """
    if not pattern:
        return None
    matches = find_files(solution, project, pattern)
    if len(matches) > 1:
        found = ", ".join(str(m) for m in matches)
        raise AmbiguousSettingsError(
            f"More than one file matched the ReSharper settings file pattern '{pattern}': {found}"
        )
    return matches[0] if matches else None


def build_command(
    solution: Solution,
    project: VsProject,
    *,
    executable: str | Path,
    report_file: str | Path,
    settings_pattern: str | None = None,
    extra_args: str | None = None,
) -> list[str]:
    """Return the inspectcode argv for *project*."""
    logger.debug("- ReSharper program         : %s", executable)
    command = [str(executable)]

    logger.debug("- Project name              : %s", project.name)
    command.append(f"/project={project.name}")

    settings_file = resolve_settings_file(solution, project, settings_pattern)
    if settings_file is None:
        logger.debug("- DotSettings file          : <not set>")
    else:
        logger.debug("- DotSettings file          : %s", settings_file)
        command.append(f"/profile={settings_file.absolute()}")

    logger.debug("- Report file               : %s", report_file)
    command.append(f"/output={Path(report_file).absolute()}")

    if extra_args and extra_args.strip():
        logger.debug("- Additional Parameters     : %s", extra_args)
        command.extend(shlex.split(extra_args))
    else:
        logger.debug("- Additional Parameters     : <not set>")

    logger.debug("- Solution file             : %s", solution.solution_file)
    command.append(str(solution.solution_file.absolute()))

    return command
