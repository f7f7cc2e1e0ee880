"""Destinations for finished violations."""

from typing import Protocol

from resharper_sonar.models import Violation


class ViolationSink(Protocol):
    def save(self, violation: Violation) -> None:
        ...


class CollectingSink:
    """Keeps every saved violation in memory, in arrival order."""

    def __init__(self) -> None:
        self.violations: list[Violation] = []

    def save(self, violation: Violation) -> None:
        self.violations.append(violation)

    def __len__(self) -> int:
        return len(self.violations)
