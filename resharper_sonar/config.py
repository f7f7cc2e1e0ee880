"""Configuration loading and validation.

Usage:
    config  = load("resharper-config.yaml")     # raises ConfigError on bad config
    project = config.resolve_project("Core")     # returns a VsProject
    generate_template("resharper-config.yaml")   # writes example file to disk
"""

import codecs
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from resharper_sonar.rules import LANGUAGES
from resharper_sonar.solution import Solution, VsProject

DEFAULT_CONFIG_PATH = "resharper-config.yaml"
DEFAULT_REPORT_PATH = "resharper-report.xml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


class ProjectNotFoundError(ConfigError):
    """Raised when a project name is not found in the config."""


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

@dataclass
class InspectCodeSettings:
    install_dir: str = ""
    settings_file: str = ""
    extra_args: str = ""


@dataclass
class ServerSettings:
    url: str = ""
    token: str = ""


@dataclass
class Config:
    solution: str
    projects: dict[str, str] = field(default_factory=dict)
    language: str = "cs"
    include_all_files: bool = False
    source_charset: str = "utf-8"
    exclusions: list[str] = field(default_factory=list)
    report_path: str = DEFAULT_REPORT_PATH
    custom_rules: str = ""
    inspectcode: InspectCodeSettings = field(default_factory=InspectCodeSettings)
    server: ServerSettings = field(default_factory=ServerSettings)

    def get_solution(self) -> Solution:
        return Solution(solution_file=Path(self.solution), exclusions=tuple(self.exclusions))

    def resolve_project(self, name: str) -> VsProject:
        """Return the project called *name* (exact, case-sensitive match)."""
        if name in self.projects:
            return self.get_solution().project(name, self.projects[name])
        available = ", ".join(self.projects.keys()) or "(none configured)"
        raise ProjectNotFoundError(
            f"Project '{name}' not found. Available projects: {available}"
        )

    @property
    def has_server(self) -> bool:
        return bool(self.server.url)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration from a YAML file.

    Environment variables RESHARPER_INSTALL_DIR, RESHARPER_REPORT_PATH,
    SONAR_URL and SONAR_TOKEN override file values.

    Raises:
        ConfigError: if the file is missing, malformed, or required fields
                     are absent.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `python -m resharper_sonar init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    projects = raw.get("projects") or {}
    if not isinstance(projects, dict):
        raise ConfigError(f"'projects' in '{config_path}' must be a mapping of name to directory.")

    inspect = raw.get("inspectcode") or {}
    server = raw.get("server") or {}

    config = Config(
        solution=str(raw.get("solution") or "").strip(),
        projects={str(k): str(v) for k, v in projects.items()},
        language=str(raw.get("language") or "cs").strip(),
        include_all_files=raw.get("include_all_files", False),
        source_charset=str(raw.get("source_charset") or "utf-8").strip(),
        exclusions=[str(p) for p in raw.get("exclusions") or []],
        report_path=(os.environ.get("RESHARPER_REPORT_PATH")
                     or str(raw.get("report_path") or DEFAULT_REPORT_PATH)),
        custom_rules=str(raw.get("custom_rules") or ""),
        inspectcode=InspectCodeSettings(
            install_dir=(os.environ.get("RESHARPER_INSTALL_DIR")
                         or str(inspect.get("install_dir", ""))).strip(),
            settings_file=str(inspect.get("settings_file", "")).strip(),
            extra_args=str(inspect.get("extra_args", "")).strip(),
        ),
        server=ServerSettings(
            url=str(os.environ.get("SONAR_URL") or server.get("url", "")).strip(),
            token=str(os.environ.get("SONAR_TOKEN") or server.get("token", "")).strip(),
        ),
    )
    _validate(config)
    return config


def _validate(config: Config) -> None:
    """Raise ConfigError if required fields are missing or invalid."""
    errors: list[str] = []

    if not config.solution:
        errors.append("  - 'solution' is missing (path to the .sln file)")
    if not config.projects:
        errors.append("  - 'projects' mapping is empty - add at least one project")
    if config.language not in LANGUAGES:
        errors.append(
            f"  - 'language' must be one of {', '.join(LANGUAGES)} (got '{config.language}')"
        )
    if not isinstance(config.include_all_files, bool):
        errors.append(
            f"  - 'include_all_files' must be true or false (got {config.include_all_files!r})"
        )
    try:
        codecs.lookup(config.source_charset)
    except LookupError:
        errors.append(f"  - 'source_charset' is not a known encoding: '{config.source_charset}'")
    if config.server.url and not config.server.token:
        errors.append(
            "  - 'server.token' is missing (or set the SONAR_TOKEN environment variable)"
        )

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
solution: "MySolution.sln"
language: "cs"                    # cs or vbnet
source_charset: "utf-8"
include_all_files: false          # also report findings in files of other projects
report_path: "resharper-report.xml"

exclusions:
  - "**/*.Designer.cs"

projects:
  # Project name as written in the solution: directory relative to the solution
  MyProject: "src/MyProject"

inspectcode:
  install_dir: "C:/Tools/jb-commandline"
  settings_file: "$(SolutionDir)/MySolution.sln.DotSettings"
  extra_args: "/no-swea"

# Extra <IssueType .../> definitions for issue types missing from the catalog
custom_rules: ""

# Optional: load the rule catalog from a SonarQube server
# server:
#   url: "https://sonar.example.com"
#   token: "squ_xxxxxxxxxxxx"
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template resharper-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists.
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
