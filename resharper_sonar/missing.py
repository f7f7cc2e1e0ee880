"""Accumulates issue types that have no rule in the catalog.

One tracker lives for one parse run. At the end of the run the recorded ids
are folded into a single project-level violation so that the operator gets
one actionable summary instead of a log line per finding.
"""

import logging
from dataclasses import dataclass, field

from resharper_sonar.issue_types import IssueTypeRegistry
from resharper_sonar.models import ProjectTarget, Violation, config_key_for
from resharper_sonar.rules import RuleCatalog

logger = logging.getLogger(__name__)

#: Rule every unknown-issue-type summary is reported under
UNKNOWN_ISSUE_TYPE_ID = "Sonar.UnknownIssueType"
MISSING_TYPES_RULE_KEY = config_key_for(UNKNOWN_ISSUE_TYPE_ID)

NOT_FOUND_MARKER = "-IssueType not found-"

HEADER = (
    "The following IssueTypes are not known to the ReSharper rule catalog.\n"
    "Add the following text to the 'custom_rules' setting to add local "
    "support for these rules, and submit them upstream so that they can be "
    "included in future releases.\n"
)


@dataclass
class MissingTypeTracker:
    catalog: RuleCatalog
    project_name: str
    _missing: set[str] = field(default_factory=set)

    def record(self, type_id: str) -> None:
        self._missing.add(type_id)

    def has_missing(self) -> bool:
        return bool(self._missing)

    @property
    def missing(self) -> list[str]:
        return sorted(self._missing)

    def compose_message(self, registry: IssueTypeRegistry) -> str:
        lines = [HEADER]
        for type_id in self.missing:
            entry = registry.get(type_id)
            if entry is None:
                lines.append(f"{NOT_FOUND_MARKER} {type_id}\n")
            else:
                lines.append(entry.to_tag() + "\n")
        return "".join(lines)

    def finalize(self, registry: IssueTypeRegistry) -> Violation | None:
        """Return the synthetic summary violation, or None.

        Issue type metadata is looked up here rather than at record time, so
        an ``<IssueTypes>`` block placed after the findings is still used.
        Returns None when nothing was recorded or when the summary rule is
        itself absent from the catalog.
        """
        if not self.has_missing():
            return None

        message = self.compose_message(registry)
        logger.warning(message)

        rule = self.catalog.find(MISSING_TYPES_RULE_KEY)
        if rule is None:
            logger.warning("Could not find rule for %s", MISSING_TYPES_RULE_KEY)
            return None

        return Violation(
            rule=rule,
            message=message.strip(),
            target=ProjectTarget(self.project_name),
        )
