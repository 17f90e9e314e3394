"""
supersync: keep supersession links consistent across a notes vault.

When a note declares ``supersedes: "[[Old note]]"`` in its frontmatter, the
old note should say ``superseded_by: "[[New note]]"`` and
``status: superseded``. supersync watches for the forward link and writes the
reverse one, refusing to overwrite a reverse link that names another note.

Public symbols are imported lazily so that ``import supersync`` stays cheap.
"""

from __future__ import annotations

import importlib
from typing import Any

from supersync.__version__ import __version__

_EXPORT_MAP = {
    # Engine
    "SyncOrchestrator": ("supersync.orchestrator", "SyncOrchestrator"),
    "SyncOutcome": ("supersync.orchestrator", "SyncOutcome"),
    "SyncResult": ("supersync.orchestrator", "SyncResult"),
    "SyncState": ("supersync.orchestrator", "SyncState"),
    "ReverseState": ("supersync.conflicts", "ReverseState"),
    "check_reverse_state": ("supersync.conflicts", "check_reverse_state"),
    "extract_link": ("supersync.links", "extract_link"),
    "merge_properties": ("supersync.frontmatter", "merge_properties"),
    "parse_metadata": ("supersync.frontmatter", "parse_metadata"),
    # Values
    "PropertyValue": ("supersync.properties", "PropertyValue"),
    "StringValue": ("supersync.properties", "StringValue"),
    # Host
    "FileVault": ("supersync.vault", "FileVault"),
    "SyncSettings": ("supersync.config", "SyncSettings"),
    "FileSettingsProvider": ("supersync.config", "FileSettingsProvider"),
    "StaticSettingsProvider": ("supersync.config", "StaticSettingsProvider"),
    "SyncSignal": ("supersync.notifications", "SyncSignal"),
    "SignalKind": ("supersync.notifications", "SignalKind"),
    "SupersyncError": ("supersync.exceptions", "SupersyncError"),
}


def __getattr__(name: str) -> Any:
    """Lazily import public symbols to avoid import side effects."""
    try:
        module_name, attr_name = _EXPORT_MAP[name]
    except KeyError as exc:
        raise AttributeError(f"module 'supersync' has no attribute {name!r}") from exc
    module = importlib.import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))


__all__ = ["__version__", *sorted(_EXPORT_MAP)]
