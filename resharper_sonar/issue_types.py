"""Per-run cache of the ``<IssueType>`` descriptions found in a report."""

import logging
from dataclasses import dataclass, field
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

_ATTR_ENTITIES = {'"': "&quot;"}


@dataclass(frozen=True)
class IssueTypeEntry:
    id: str
    attributes: dict[str, str]

    def to_tag(self) -> str:
        """Serialize back to a self-closing ``<IssueType .../>`` tag.

        Attribute order is preserved so the tag can be pasted into the
        ``custom_rules`` setting as-is.
        """
        attrs = " ".join(
            f'{name}="{escape(value, _ATTR_ENTITIES)}"'
            for name, value in self.attributes.items()
        )
        return f"<IssueType {attrs} />"


@dataclass
class IssueTypeRegistry:
    _entries: dict[str, IssueTypeEntry] = field(default_factory=dict)

    def register(self, attributes: dict[str, str]) -> IssueTypeEntry:
        entry = IssueTypeEntry(id=attributes.get("Id", ""), attributes=dict(attributes))
        self._entries[entry.id] = entry
        logger.debug("Found IssueType %s with value %s", entry.id, entry.to_tag())
        return entry

    def get(self, type_id: str) -> IssueTypeEntry | None:
        return self._entries.get(type_id)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
