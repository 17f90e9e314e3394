"""
Typed frontmatter property values.

Frontmatter parsed by YAML arrives as loosely-typed Python objects. The
sync engine only ever interprets strings for its tracked keys, so values
are wrapped into a small tagged union and every other shape falls through
an explicit case instead of a truthiness check.

Usage:
    from supersync.properties import StringValue, property_value_from_raw

    value = property_value_from_raw("[[Old note]]")
    assert value == StringValue("[[Old note]]")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class StringValue:
    """A string property."""

    value: str


@dataclass(frozen=True)
class BooleanValue:
    """A boolean property."""

    value: bool


@dataclass(frozen=True)
class NumberValue:
    """An integer or float property."""

    value: Union[int, float]


@dataclass(frozen=True)
class ListValue:
    """A list of property values."""

    items: tuple["PropertyValue", ...] = ()


@dataclass(frozen=True)
class NullValue:
    """An empty property (``key:`` with no value) or an absent one."""


PropertyValue = Union[StringValue, BooleanValue, NumberValue, ListValue, NullValue]

NULL = NullValue()


def property_value_from_raw(raw: Any) -> PropertyValue:
    """Convert a YAML-loaded object into a PropertyValue.

    Handles:
    - None → NullValue
    - bool → BooleanValue (checked before int, bool is an int subclass)
    - int/float → NumberValue
    - str → StringValue
    - date/datetime → StringValue in ISO format
    - list/tuple → ListValue of converted items
    - anything else (nested mappings) → NullValue, i.e. "not a link"
    """
    if raw is None:
        return NULL
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, (int, float)):
        return NumberValue(raw)
    if isinstance(raw, str):
        return StringValue(raw)
    if isinstance(raw, (datetime, date)):
        return StringValue(raw.isoformat())
    if isinstance(raw, (list, tuple)):
        return ListValue(tuple(property_value_from_raw(item) for item in raw))
    return NULL


def metadata_from_raw(raw: Mapping[Any, Any] | None) -> dict[str, PropertyValue]:
    """Convert a parsed frontmatter mapping, keeping key order."""
    if not raw:
        return {}
    return {str(key): property_value_from_raw(value) for key, value in raw.items()}


__all__ = [
    "StringValue",
    "BooleanValue",
    "NumberValue",
    "ListValue",
    "NullValue",
    "PropertyValue",
    "NULL",
    "property_value_from_raw",
    "metadata_from_raw",
]
