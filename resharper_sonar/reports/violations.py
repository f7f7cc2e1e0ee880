"""Violation report generators.

Functions:
    build_report(project, repository, violations, results)  -> dict
    to_generic_issues(violations)                            -> dict

``build_report`` is the tool's own JSON report; ``to_generic_issues``
renders SonarQube's generic issue import format so the output can be fed to
``sonar.externalIssuesReportPaths``.
"""

from datetime import datetime, timezone
from typing import Any

from resharper_sonar.models import PRIORITIES, FileTarget, Violation
from resharper_sonar.parser import ParseResult

ENGINE_ID = "resharper"

_TARGET_KINDS = ("file", "project")

# Generic issue import has no notion of a category, everything is a smell
_GENERIC_TYPE = "CODE_SMELL"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_report(
    project: str,
    repository: str,
    violations: list[Violation],
    results: list[ParseResult],
) -> dict:
    """Return the JSON report for one project's parse runs."""
    missing = sorted({t for r in results for t in r.missing_types})
    return {
        "report_type":         "violations",
        "project":             project,
        "repository":          repository,
        "generated_at":        datetime.now(timezone.utc).isoformat(),
        "reports":             [r.to_dict() for r in results],
        "summary":             _build_summary(violations),
        "missing_issue_types": missing,
        "violations":          [v.to_dict() for v in violations],
    }


def to_generic_issues(violations: list[Violation]) -> dict:
    """Return *violations* in SonarQube's generic issue import format.

    Project-level violations have no file to point at and are left out;
    their message already names the file they came from.
    """
    return {"issues": [_generic_issue(v) for v in violations if isinstance(v.target, FileTarget)]}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _build_summary(violations: list[Violation]) -> dict:
    by_priority = {p: 0 for p in PRIORITIES}
    by_target   = {k: 0 for k in _TARGET_KINDS}

    for violation in violations:
        by_priority[violation.rule.priority] += 1
        by_target[violation.target.kind] += 1

    return {
        "total":       len(violations),
        "by_priority": by_priority,
        "by_target":   by_target,
    }


def _generic_issue(violation: Violation) -> dict[str, Any]:
    location: dict[str, Any] = {
        "message":  violation.message,
        "filePath": violation.target.path,
    }
    if violation.target.line is not None:
        location["textRange"] = {"startLine": violation.target.line}
    return {
        "engineId":        ENGINE_ID,
        "ruleId":          violation.rule.key,
        "severity":        violation.rule.priority,
        "type":            _GENERIC_TYPE,
        "primaryLocation": location,
    }
