"""Streaming parser for ReSharper inspectcode reports.

Usage:
    parser = ReportParser(catalog, solution, project, sink)
    result = parser.parse("resharper-report.xml")

Report layout (``IssueTypes`` may come before or after ``Issues``)::

    <Report>
      <IssueTypes>
        <IssueType Id="UnusedVariable" Category="..." Severity="WARNING" />
      </IssueTypes>
      <Issues>
        <Project Name="Core">
          <Issue TypeId="UnusedVariable" File="Core\\Foo.cs" Line="12" Message="..." />
        </Project>
      </Issues>
    </Report>

Only ``Issue`` entries of the project under analysis are resolved. Each
resolved finding is pushed to the sink as soon as it is read; unknown issue
types are summarised in one synthetic violation once the report is done.
"""

import codecs
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO
from xml.etree import ElementTree

from resharper_sonar.issue_types import IssueTypeRegistry
from resharper_sonar.missing import MissingTypeTracker
from resharper_sonar.models import (
    FileTarget,
    Finding,
    ProjectTarget,
    RuleRecord,
    Violation,
    config_key_for,
)
from resharper_sonar.rules import RuleCatalog
from resharper_sonar.sinks import ViolationSink
from resharper_sonar.solution import Solution, VsProject, find_files

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ReportReadError(Exception):
    """Raised when a report cannot be opened, decoded or parsed."""


class ReportNotFoundError(ReportReadError):
    """Raised when no report matches the configured report path."""


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class ParseResult:
    report: str
    saved: int = 0
    dropped: int = 0
    fallbacks: int = 0
    missing_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "report":        self.report,
            "saved":         self.saved,
            "dropped":       self.dropped,
            "fallbacks":     self.fallbacks,
            "missing_types": self.missing_types,
        }


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class ReportParser:
    """Resolves the findings of one project against a rule catalog."""

    def __init__(
        self,
        catalog: RuleCatalog,
        solution: Solution,
        project: VsProject,
        sink: ViolationSink,
        include_all_files: bool = False,
        charset: str = "utf-8",
    ) -> None:
        self.catalog = catalog
        self.solution = solution
        self.project = project
        self.sink = sink
        self.include_all_files = include_all_files
        self.charset = charset

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def parse(self, report_path: str | Path) -> ParseResult:
        """Stream *report_path* and save a violation per accepted finding.

        Raises:
            ReportReadError: the file is missing or unreadable, is not
                well-formed XML, or does not decode with ``charset``.
        """
        path = Path(report_path)
        logger.debug("Parsing ReSharper report %s for project '%s'", path, self.project.name)

        try:
            codecs.lookup(self.charset)
        except LookupError as exc:
            raise ReportReadError(
                f"Unknown charset '{self.charset}' for ReSharper result file: {path}"
            ) from exc

        run = _ReportRun(self, IssueTypeRegistry(),
                         MissingTypeTracker(self.catalog, self.project.name),
                         ParseResult(report=str(path)))
        try:
            with path.open(encoding=self.charset) as f:
                run.consume(f)
        except FileNotFoundError as exc:
            raise ReportReadError(f"Cannot find ReSharper result file: {path}") from exc
        except (OSError, UnicodeDecodeError, ElementTree.ParseError) as exc:
            raise ReportReadError(
                f"Error while reading ReSharper result file: {path}: {exc}"
            ) from exc

        run.result.missing_types = run.tracker.missing
        summary = run.tracker.finalize(run.registry)
        if summary is not None:
            self.sink.save(summary)
            run.result.saved += 1
        return run.result

    # ------------------------------------------------------------------
    # Violation resolution
    # ------------------------------------------------------------------

    def resolve(self, finding: Finding, tracker: MissingTypeTracker, result: ParseResult) -> None:
        config_key = config_key_for(finding.type_id)
        logger.debug("Searching for rule '%s' in repository '%s'", config_key, self.catalog.repository)

        rule = self.catalog.find(config_key)
        if rule is None:
            logger.warning(
                "Could not find the following rule in the ReSharper rule repository: %s",
                config_key,
            )
            tracker.record(finding.type_id)
            return

        violation = self.attach(rule, finding, result)
        if violation is None:
            result.dropped += 1
            return
        self.sink.save(violation)
        result.saved += 1

    def attach(self, rule: RuleRecord, finding: Finding, result: ParseResult) -> Violation | None:
        """Attach *finding* to its file, falling back to the project.

        Returns None when the file is excluded, or when it lies outside the
        project and ``include_all_files`` is off.
        """
        source = self.solution.resolve(finding.file)

        if self.solution.is_excluded(source):
            logger.debug("File is marked as excluded, so not reporting violation: %s", source.name)
            return None

        in_project = self.project.contains(source)
        if not (self.include_all_files or in_project):
            logger.debug("Violation not being saved for unsupported file %s", source.name)
            return None

        try:
            return self._against_file(rule, finding, source, in_project)
        except ValueError:
            # ResourceError, or a non-numeric Line attribute
            logger.warning(
                "Violation could not be saved against file, associating to project '%s' instead: %s",
                self.project.name, source,
            )
            result.fallbacks += 1
            return self._against_project(rule, finding, source)

    def _against_file(
        self, rule: RuleRecord, finding: Finding, source: Path, in_project: bool
    ) -> Violation:
        target = FileTarget(
            path=self.solution.relative_path(source),
            line=int(finding.line) if finding.line is not None else None,
        )
        message = finding.message
        if not in_project:
            message += _annotation(source.name, finding.line)
        return Violation(rule=rule, message=message.strip(), target=target)

    def _against_project(self, rule: RuleRecord, finding: Finding, source: Path) -> Violation:
        message = finding.message + _annotation(source.name, finding.line)
        return Violation(rule=rule, message=message.strip(), target=ProjectTarget(self.project.name))


def _annotation(file_name: str, line: str | None) -> str:
    if line is None:
        return f" (for file {file_name})"
    return f" (for file {file_name} line {line})"


# ---------------------------------------------------------------------------
# Stream state machine
# ---------------------------------------------------------------------------

class _ReportRun:
    """State of one parse run: element path plus the per-run caches.

    Depths are counted from the root element (depth 1)::

        2: Issues       3: Project      4: Issue
        2: IssueTypes   3: IssueType
    """

    def __init__(
        self,
        parser: ReportParser,
        registry: IssueTypeRegistry,
        tracker: MissingTypeTracker,
        result: ParseResult,
    ) -> None:
        self.parser = parser
        self.registry = registry
        self.tracker = tracker
        self.result = result
        self._path: list[str] = []
        self._open: list[ElementTree.Element] = []
        self._in_project = False

    def consume(self, stream: IO[str]) -> None:
        pull = ElementTree.XMLPullParser(events=("start", "end"))
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            pull.feed(chunk)
            self._dispatch(pull)
        # raises ParseError on a truncated document
        pull.close()
        self._dispatch(pull)

    def _dispatch(self, pull: ElementTree.XMLPullParser) -> None:
        for event, elem in pull.read_events():
            if event == "start":
                self._start(elem)
            else:
                self._end(elem)

    def _start(self, elem: ElementTree.Element) -> None:
        self._path.append(elem.tag)
        self._open.append(elem)
        depth = len(self._path)
        section = self._path[1] if depth > 1 else None

        if section == "Issues":
            if depth == 3 and elem.tag == "Project":
                self._enter_project(elem.get("Name", ""))
            elif depth == 4 and elem.tag == "Issue" and self._path[2] == "Project" and self._in_project:
                self.parser.resolve(Finding.from_attributes(elem.attrib), self.tracker, self.result)
        elif section == "IssueTypes":
            if depth == 3 and elem.tag == "IssueType":
                self.registry.register(dict(elem.attrib))

    def _end(self, elem: ElementTree.Element) -> None:
        if len(self._path) == 3 and elem.tag == "Project":
            self._in_project = False
        self._path.pop()
        self._open.pop()
        elem.clear()
        # finished children are dropped from the open parent as well
        if self._open:
            self._open[-1].remove(elem)

    def _enter_project(self, name: str) -> None:
        current = self.parser.project.name
        self._in_project = name == current
        if not self._in_project:
            logger.debug(
                "Skipping project block due to name mismatch. Currently analyzing '%s', processing '%s'",
                current, name,
            )


# ---------------------------------------------------------------------------
# Report discovery
# ---------------------------------------------------------------------------

def find_reports(solution: Solution, project: VsProject, pattern: str) -> list[Path]:
    """Return the reports matching *pattern* (see ``find_files``).

    Raises:
        ReportNotFoundError: if nothing matches.
    """
    reports = find_files(solution, project, pattern)
    if not reports:
        raise ReportNotFoundError(
            f"No ReSharper report found for '{pattern}'. "
            "Check 'report_path' in the configuration or pass --report."
        )
    logger.info("Reusing ReSharper reports: %s", "; ".join(str(r) for r in reports))
    return reports
