"""Wikilink extraction for frontmatter relation properties.

Pure functions, no I/O. The orchestrator reads ``supersedes`` through
``extract_link`` and the conflict checker reads ``superseded_by`` the same way.
"""

from __future__ import annotations

import re
from typing import Optional

from supersync.properties import PropertyValue, StringValue

# [[anything up to the first closing bracket]]
_WIKILINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")


def extract_link(value: Optional[PropertyValue]) -> Optional[str]:
    """Return the text inside the first ``[[...]]`` span of a string property.

    Non-string values, strings without a bracketed span and spans holding
    only whitespace all yield None. Alias (``|``) and heading or block
    (``#``) suffixes are kept; deciding what they mean is up to the resolver.
    """
    if not isinstance(value, StringValue):
        return None
    match = _WIKILINK_PATTERN.search(value.value)
    if not match:
        return None
    text = match.group(1).strip()
    return text or None


def format_link(basename: str) -> str:
    """Serialize a reverse-relation value, quoted so YAML keeps it a string."""
    return f'"[[{basename}]]"'


def split_link_text(text: str) -> tuple[str, Optional[str], Optional[str]]:
    """Split ``path#subpath|alias`` into its parts.

    Returns (path, subpath, alias); missing parts are None.
    """
    alias = None
    if "|" in text:
        text, alias = text.split("|", 1)
        alias = alias.strip() or None
    subpath = None
    if "#" in text:
        text, subpath = text.split("#", 1)
        subpath = subpath.strip() or None
    return text.strip(), subpath, alias


__all__ = ["extract_link", "format_link", "split_link_text"]
