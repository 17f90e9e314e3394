"""
Classification of a target document's existing reverse relation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from supersync.links import extract_link
from supersync.properties import PropertyValue
from supersync.protocols import LinkResolver

logger = logging.getLogger(__name__)


class ReverseStateKind(Enum):
    """What a target's ``superseded_by`` says about the would-be source."""

    ABSENT = "absent"
    MATCHES_SOURCE = "matches_source"
    CONFLICTS_WITH = "conflicts_with"


@dataclass(frozen=True)
class ReverseState:
    """Result of inspecting a target's reverse relation.

    ``document_id`` is the source for MATCHES_SOURCE, the other document for
    CONFLICTS_WITH and None for ABSENT.
    """

    kind: ReverseStateKind
    document_id: Optional[str] = None

    @classmethod
    def absent(cls) -> ReverseState:
        return cls(ReverseStateKind.ABSENT)

    @classmethod
    def matches(cls, source_id: str) -> ReverseState:
        return cls(ReverseStateKind.MATCHES_SOURCE, source_id)

    @classmethod
    def conflicts(cls, other_id: str) -> ReverseState:
        return cls(ReverseStateKind.CONFLICTS_WITH, other_id)

    @property
    def is_absent(self) -> bool:
        return self.kind is ReverseStateKind.ABSENT


async def check_reverse_state(
    superseded_by: Optional[PropertyValue],
    source_id: str,
    target_id: str,
    resolver: LinkResolver,
) -> ReverseState:
    """Classify the target's current ``superseded_by`` against the source.

    Args:
        superseded_by: The target's current property value, None if unset
        source_id: Identity of the document asserting ``supersedes``
        target_id: Identity of the target; links are resolved from here
        resolver: Link resolver shared with the forward lookup

    A missing link, or one that no longer resolves, counts as ABSENT: a
    dangling reverse relation does not block an update.
    """
    link_text = extract_link(superseded_by)
    if link_text is None:
        return ReverseState.absent()

    existing = await resolver.resolve(link_text, target_id)
    if existing is None:
        logger.debug(f"Dangling superseded_by in {target_id}: {link_text!r}")
        return ReverseState.absent()
    if existing == source_id:
        return ReverseState.matches(source_id)
    return ReverseState.conflicts(existing)


__all__ = ["ReverseStateKind", "ReverseState", "check_reverse_state"]
