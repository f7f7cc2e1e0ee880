"""Rule catalog: the ReSharper issue types known locally.

Usage:
    catalog = RuleCatalog.load("cs", custom_rules=config.custom_rules)
    rule    = catalog.find("ReSharperInspectCode#UnusedVariable")

Rules come from the packaged ``DefaultRules.ReSharper.xml`` resource (or from
a SonarQube server, see ``RuleCatalog.from_server``) plus an optional custom
fragment of ``<IssueType .../>`` tags supplied by the operator. The catalog
is read-only once built and can be shared between parsers.
"""

import logging
from importlib import resources
from io import StringIO
from typing import IO, Iterator
from xml.etree import ElementTree

from resharper_sonar.client import SonarClient
from resharper_sonar.models import RuleRecord

logger = logging.getLogger(__name__)

REPOSITORY_PREFIX = "resharper"
DEFAULT_RULES_RESOURCE = "DefaultRules.ReSharper.xml"

LANGUAGES = ("cs", "vbnet")


def repository_key(language: str) -> str:
    return f"{REPOSITORY_PREFIX}-{language}"


# ---------------------------------------------------------------------------
# Rule definition parsing
# ---------------------------------------------------------------------------

def parse_rules(source: IO) -> list[RuleRecord]:
    """Parse every ``Report/IssueTypes/IssueType`` element of *source*.

    Entries without an ``Id`` are skipped with a warning.

    Raises:
        ElementTree.ParseError: if *source* is not well-formed XML.
    """
    rules: list[RuleRecord] = []
    for _, elem in ElementTree.iterparse(source, events=("end",)):
        if elem.tag != "IssueType":
            continue
        try:
            rules.append(RuleRecord.from_issue_type(dict(elem.attrib)))
        except ValueError as exc:
            logger.warning("Skipping rule definition: %s", exc)
        elem.clear()
    return rules


def parse_custom_rules(fragment: str) -> list[RuleRecord]:
    """Parse operator-supplied ``<IssueType .../>`` tags."""
    wrapped = f"<Report><IssueTypes>{fragment}</IssueTypes></Report>"
    return parse_rules(StringIO(wrapped))


def _default_rules() -> list[RuleRecord]:
    resource = resources.files("resharper_sonar") / "data" / DEFAULT_RULES_RESOURCE
    with resource.open("rb") as f:
        return parse_rules(f)


# ---------------------------------------------------------------------------
# Server rules
# ---------------------------------------------------------------------------

def fetch_server_rules(client: SonarClient, repository: str) -> list[RuleRecord]:
    """Return the rules a SonarQube server holds for *repository*.

    The server's ``internalKey`` is the config key ReSharper findings are
    matched against; rules without one cannot be matched and are skipped.
    """
    rules: list[RuleRecord] = []
    for raw in client.search_rules(repository):
        config_key = raw.get("internalKey")
        if not config_key:
            logger.debug("Server rule %s has no internalKey, skipped", raw.get("key"))
            continue
        rules.append(RuleRecord(
            key=config_key.split("#", 1)[-1],
            config_key=config_key,
            name=raw.get("name", ""),
            category=", ".join(raw.get("sysTags", [])),
            severity=_severity_from_priority(raw.get("severity", "")),
        ))
    return rules


_SEVERITY_BY_PRIORITY = {
    "BLOCKER":  "ERROR",
    "CRITICAL": "WARNING",
    "MAJOR":    "SUGGESTION",
    "MINOR":    "HINT",
    "INFO":     "DO_NOT_SHOW",
}


def _severity_from_priority(priority: str) -> str:
    return _SEVERITY_BY_PRIORITY.get(priority.upper(), "WARNING")


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class RuleCatalog:
    """Config key -> RuleRecord mapping for one rule repository."""

    def __init__(self, repository: str, rules: list[RuleRecord] | None = None) -> None:
        self.repository = repository
        self._rules: dict[str, RuleRecord] = {}
        for rule in rules or []:
            self._add(rule)

    @classmethod
    def load(cls, language: str, custom_rules: str | None = None) -> "RuleCatalog":
        """Build the catalog from the packaged defaults plus *custom_rules*."""
        catalog = cls(repository_key(language), _default_rules())
        catalog._add_custom(custom_rules)
        return catalog

    @classmethod
    def from_server(
        cls,
        client: SonarClient,
        language: str,
        custom_rules: str | None = None,
    ) -> "RuleCatalog":
        """Build the catalog from a SonarQube server plus *custom_rules*."""
        repository = repository_key(language)
        catalog = cls(repository, fetch_server_rules(client, repository))
        catalog._add_custom(custom_rules)
        return catalog

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, config_key: str) -> RuleRecord | None:
        return self._rules.get(config_key)

    def __contains__(self, config_key: object) -> bool:
        return config_key in self._rules

    def __iter__(self) -> Iterator[RuleRecord]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _add(self, rule: RuleRecord) -> None:
        if rule.config_key in self._rules:
            logger.debug("Rule %s redefined", rule.config_key)
        self._rules[rule.config_key] = rule

    def _add_custom(self, fragment: str | None) -> None:
        if not fragment or not fragment.strip():
            return
        try:
            custom = parse_custom_rules(fragment)
        except ElementTree.ParseError as exc:
            logger.warning("Error parsing ReSharper custom rules: %s", exc)
            return
        for rule in custom:
            self._add(rule)
        logger.debug("Loaded %d custom rule(s)", len(custom))
