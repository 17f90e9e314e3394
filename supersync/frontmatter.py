"""
Frontmatter reading and line-preserving property merging.

The merger edits the leading ``---`` block as text rather than round-tripping
it through a YAML dumper, so comments, quoting, key order and everything
below the block survive byte for byte.

Usage:
    from supersync.frontmatter import merge_properties, parse_metadata

    updated = merge_properties(content, {"status": "superseded"})
    metadata = parse_metadata(updated)
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

import yaml

from supersync.properties import PropertyValue, metadata_from_raw

logger = logging.getLogger(__name__)

# Opening delimiter at offset 0, optional body, closing delimiter on its own line.
# Group 1 captures the newline style so CRLF documents are edited in kind.
_BLOCK_PATTERN = re.compile(r"\A---(\r?\n)(?:(.*?)\1)?---(?=\r?\n|\Z)", re.DOTALL)

# Windows editors often save UTF-8 with a byte-order mark ahead of the block
_BOM = "\ufeff"


def _split_bom(content: str) -> tuple[str, str]:
    if content.startswith(_BOM):
        return _BOM, content[len(_BOM):]
    return "", content


def split_frontmatter(content: str) -> tuple[Optional[str], str]:
    """Split content into (frontmatter body, remainder).

    The body is None when the document has no leading block; it is an
    empty string for a block with nothing between the delimiters.
    """
    _, text = _split_bom(content)
    match = _BLOCK_PATTERN.match(text)
    if not match:
        return None, content
    return match.group(2) or "", text[match.end():]


def parse_metadata(content: str) -> dict[str, PropertyValue]:
    """Parse the leading frontmatter block into typed property values.

    Documents without a block, with malformed YAML, or whose block is not
    a mapping yield an empty dict.
    """
    body, _ = split_frontmatter(content)
    if not body:
        return {}
    try:
        raw = yaml.safe_load(body)
    except (yaml.YAMLError, ValueError) as e:
        # ValueError: timestamps like 2024-02-30 that YAML accepts but datetime rejects
        logger.warning(f"Ignoring malformed frontmatter: {e}")
        return {}
    if not isinstance(raw, dict):
        return {}
    return metadata_from_raw(raw)


def _line_key(line: str) -> Optional[str]:
    """Return the top-level key a frontmatter line assigns, if any."""
    if not line or line[0] in " \t#-":
        return None
    if ":" not in line:
        return None
    key = line.split(":", 1)[0].strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in "\"'":
        key = key[1:-1]
    return key


def _is_continuation(line: str) -> bool:
    """Indented lines and bare sequence items belong to the previous key."""
    return bool(line) and (line[0] in " \t" or line.startswith("- ") or line == "-")


def _merge_lines(lines: list[str], desired: Mapping[str, str]) -> list[str]:
    merged: list[str] = []
    matched: set[str] = set()
    replacing = False
    for line in lines:
        if replacing and _is_continuation(line):
            # Drop the old multi-line value of a key we just rewrote
            continue
        replacing = False
        key = _line_key(line)
        if key is not None and key in desired:
            merged.append(f"{key}: {desired[key]}")
            matched.add(key)
            replacing = True
        else:
            merged.append(line)
    for key, value in desired.items():
        if key not in matched:
            merged.append(f"{key}: {value}")
    return merged


def merge_properties(content: str, desired: Mapping[str, str]) -> str:
    """Return content with each desired ``key: value`` set in its frontmatter.

    Args:
        content: Raw document text
        desired: Property name to already-serialized value text, in the
            order new keys should be appended

    Existing lines for a desired key are rewritten in place; every other
    line keeps its text and position. Keys not present yet are appended at
    the end of the block. A document without a block gets a new one holding
    exactly the desired properties, followed by the untouched original text.
    Same inputs always give the same output.
    """
    if not desired:
        return content

    bom, text = _split_bom(content)
    match = _BLOCK_PATTERN.match(text)
    if not match:
        props = "\n".join(f"{key}: {value}" for key, value in desired.items())
        return f"{bom}---\n{props}\n---\n{text}"

    newline = match.group(1)
    body = match.group(2)
    lines = body.split(newline) if body is not None else []
    merged = _merge_lines(lines, desired)

    block = f"---{newline}" + "".join(line + newline for line in merged) + "---"
    return bom + block + text[match.end():]


__all__ = ["split_frontmatter", "parse_metadata", "merge_properties"]
