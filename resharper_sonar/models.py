"""Data models shared by the catalog, the report parser and the sinks.

Contains frozen dataclasses with JSON serialization helpers:
    - RuleRecord      one known ReSharper issue type
    - Finding         one <Issue> entry read from a report
    - FileTarget      violation attached to a source file (and line)
    - ProjectTarget   violation attached to the whole project
    - Violation       sink-ready record
"""

from dataclasses import dataclass
from typing import Any

#: Prefix ReSharper rule config keys carry in the rule repository
CONFIG_KEY_PREFIX = "ReSharperInspectCode"

#: ReSharper severity -> SonarQube priority
_PRIORITIES = {
    "ERROR":       "BLOCKER",
    "WARNING":     "CRITICAL",
    "SUGGESTION":  "MAJOR",
    "HINT":        "MINOR",
    "DO_NOT_SHOW": "INFO",
}
_DEFAULT_PRIORITY = "MAJOR"

PRIORITIES = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")


def config_key_for(type_id: str) -> str:
    """Return the rule config key for a ReSharper issue type id."""
    return f"{CONFIG_KEY_PREFIX}#{type_id}"


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RuleRecord:
    key: str
    config_key: str
    name: str = ""
    category: str = ""
    severity: str = "WARNING"
    description: str = ""

    @property
    def priority(self) -> str:
        return _PRIORITIES.get(self.severity.upper(), _DEFAULT_PRIORITY)

    @classmethod
    def from_issue_type(cls, attributes: dict[str, str]) -> "RuleRecord":
        """Build a rule from the attributes of an ``<IssueType>`` element.

        Raises:
            ValueError: if the ``Id`` attribute is missing or blank.
        """
        type_id = (attributes.get("Id") or "").strip()
        if not type_id:
            raise ValueError("IssueType without an 'Id' attribute")
        description = attributes.get("Description", "")
        return cls(
            key=type_id,
            config_key=config_key_for(type_id),
            name=description or type_id,
            category=attributes.get("Category", ""),
            severity=attributes.get("Severity", "WARNING").upper(),
            description=description,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key":         self.key,
            "config_key":  self.config_key,
            "name":        self.name,
            "category":    self.category,
            "severity":    self.severity,
            "priority":    self.priority,
        }


# ---------------------------------------------------------------------------
# Findings and violations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Finding:
    """An ``<Issue>`` entry, attributes kept as read from the report."""
    type_id: str
    file: str
    line: str | None
    message: str

    @classmethod
    def from_attributes(cls, attributes: dict[str, str]) -> "Finding":
        return cls(
            type_id=attributes.get("TypeId", ""),
            file=attributes.get("File", ""),
            line=attributes.get("Line") or None,
            message=attributes.get("Message", ""),
        )


@dataclass(frozen=True)
class FileTarget:
    path: str
    line: int | None = None

    kind = "file"


@dataclass(frozen=True)
class ProjectTarget:
    name: str

    kind = "project"


@dataclass(frozen=True)
class Violation:
    rule: RuleRecord
    message: str
    target: FileTarget | ProjectTarget

    @property
    def rule_key(self) -> str:
        return self.rule.key

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "rule":     self.rule.key,
            "priority": self.rule.priority,
            "message":  self.message,
            "target":   self.target.kind,
        }
        if isinstance(self.target, FileTarget):
            data["file"] = self.target.path
            data["line"] = self.target.line
        else:
            data["project"] = self.target.name
        return data
