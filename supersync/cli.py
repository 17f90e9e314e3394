"""
Command-line interface for supersync.

Usage:
    supersync sync VAULT notes/A.md [notes/C.md ...] [--yes]
    supersync scan VAULT
    supersync watch VAULT [--interval 1.0]
    supersync config show|get KEY|set KEY VALUE [--config PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections import Counter
from pathlib import Path
from typing import Optional, Sequence

import yaml

from supersync.__version__ import __version__
from supersync.config import (
    CONFIG_FILE,
    FileSettingsProvider,
    SyncSettings,
    find_config,
    get_nested,
    load_config,
    parse_bool,
    save_config,
    set_nested,
)
from supersync.exceptions import ConfigurationError, SupersyncError
from supersync.logging_config import configure_logging, get_logger
from supersync.notifications import ConsoleNotifier, SyncSignal
from supersync.orchestrator import SyncOrchestrator, SyncResult
from supersync.protocols import ConfirmationProvider, StaticConfirmation
from supersync.vault import FileVault

logger = get_logger(__name__)


class PromptConfirmation:
    """Asks on the terminal. End of input counts as a dismissal."""

    def __init__(self, stream=None):
        self._stream = stream

    async def confirm(self, signal: SyncSignal) -> Optional[bool]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._ask, signal.message)

    def _ask(self, message: str) -> Optional[bool]:
        stream = self._stream or sys.stdout
        print(f"{message}", file=stream)
        print("This will set superseded_by and status: superseded on the target file.", file=stream)
        try:
            answer = input("Confirm? [y/N] ")
        except EOFError:
            return None
        return answer.strip().lower() in ("y", "yes")


def _settings_path(args: argparse.Namespace) -> Optional[Path]:
    if getattr(args, "config", None):
        return Path(args.config)
    vault = getattr(args, "vault", None)
    return find_config(Path(vault) if vault else None)


def _build(args: argparse.Namespace) -> tuple[FileVault, SyncOrchestrator, bool]:
    vault = FileVault(args.vault)
    settings = FileSettingsProvider(_settings_path(args))
    interactive = not getattr(args, "yes", False)
    confirmation: ConfirmationProvider = (
        PromptConfirmation() if interactive else StaticConfirmation(True)
    )
    orchestrator = SyncOrchestrator(
        store=vault,
        resolver=vault,
        notifier=ConsoleNotifier(sys.stdout),
        settings=settings,
        confirmation=confirmation,
    )
    needs_prompt = interactive and settings.get_settings().confirm_before_update
    return vault, orchestrator, needs_prompt


async def _run_all(
    orchestrator: SyncOrchestrator, document_ids: Sequence[str], sequential: bool
) -> list[SyncResult]:
    if not sequential:
        return await orchestrator.handle_changes(document_ids)
    return [await orchestrator.handle_change(d) for d in document_ids]


def _print_summary(results: Sequence[SyncResult]) -> None:
    counts = Counter(r.outcome.value for r in results if r.outcome)
    summary = ", ".join(f"{name}={count}" for name, count in sorted(counts.items()))
    print(f"Evaluated {len(results)} document(s): {summary or 'nothing to do'}")


def cmd_sync(args: argparse.Namespace) -> int:
    """Evaluate the given documents."""
    vault, orchestrator, sequential = _build(args)
    document_ids = []
    missing = []
    for path in args.documents:
        # Paths may be given relative to the working directory or the vault root
        candidate = Path(path)
        if not candidate.is_absolute() and candidate.exists():
            candidate = candidate.resolve()
        try:
            document_id = vault.document_id(candidate)
        except SupersyncError:
            missing.append(path)
            continue
        if vault.path_for(document_id).is_file():
            document_ids.append(document_id)
        else:
            missing.append(path)
    for path in missing:
        print(f"Error: document not found: {path}", file=sys.stderr)

    results = asyncio.run(_run_all(orchestrator, document_ids, sequential))
    _print_summary(results)
    return 1 if missing else 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Evaluate every document in the vault."""
    vault, orchestrator, sequential = _build(args)
    results = asyncio.run(_run_all(orchestrator, vault.list_documents(), sequential))
    _print_summary(results)
    return 0


async def _watch(vault: FileVault, orchestrator: SyncOrchestrator, interval: float) -> None:
    logger.info("Watching vault", root=str(vault.root), interval=interval)
    async for document_id in vault.watch(interval=interval):
        await orchestrator.handle_change(document_id)


def cmd_watch(args: argparse.Namespace) -> int:
    """Evaluate documents as they change, until interrupted."""
    vault, orchestrator, _ = _build(args)
    try:
        asyncio.run(_watch(vault, orchestrator, args.interval))
    except KeyboardInterrupt:
        print("Stopped watching.")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show, get or set a setting."""
    path = _settings_path(args)

    if args.action == "show":
        if path is None:
            print(f"No {CONFIG_FILE} found, using defaults")
            config = {}
        else:
            print(f"Configuration from: {path}")
            config = load_config(path)
        print(yaml.safe_dump(config, default_flow_style=False, sort_keys=False).rstrip())
        effective = FileSettingsProvider(path).get_settings()
        print(f"Effective: {effective.to_dict()}")
        return 0

    if args.action == "get":
        config = load_config(path) if path else {}
        value = get_nested(config, args.key)
        if value is None:
            print(f"{args.key}: (not set)")
        else:
            print(f"{args.key}: {value}")
        return 0

    if args.action == "set":
        target = path or Path.cwd() / CONFIG_FILE
        config = load_config(target)
        try:
            value = parse_bool(args.value, args.key)
        except ConfigurationError:
            value = args.value
        set_nested(config, args.key, value)
        try:
            SyncSettings.from_dict(config)
        except ConfigurationError as e:
            print(f"Error: {e.reason}", file=sys.stderr)
            return 1
        if not save_config(config, target):
            print(f"Error: could not write {target}", file=sys.stderr)
            return 1
        print(f"Set {args.key} = {value} in {target}")
        return 0

    print(f"Unknown action: {args.action}", file=sys.stderr)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="supersync",
        description="Keep superseded_by/status in step with supersedes across a notes vault",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--config", default=None, help=f"Settings file (default: nearest {CONFIG_FILE})")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Evaluate specific documents")
    sync_parser.add_argument("vault", help="Vault root directory")
    sync_parser.add_argument("documents", nargs="+", help="Document paths")
    sync_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompts")
    sync_parser.set_defaults(func=cmd_sync)

    scan_parser = subparsers.add_parser("scan", help="Evaluate every document in a vault")
    scan_parser.add_argument("vault", help="Vault root directory")
    scan_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompts")
    scan_parser.set_defaults(func=cmd_scan)

    watch_parser = subparsers.add_parser("watch", help="Evaluate documents as they change")
    watch_parser.add_argument("vault", help="Vault root directory")
    watch_parser.add_argument("--interval", type=float, default=1.0, help="Polling interval in seconds")
    watch_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompts")
    watch_parser.set_defaults(func=cmd_watch)

    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_parser.add_argument("action", choices=["show", "get", "set"])
    config_parser.add_argument("key", nargs="?", help="Setting name (get/set)")
    config_parser.add_argument("value", nargs="?", help="New value (set)")
    config_parser.add_argument("--vault", default=None, help="Look for settings above this directory")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "config" and args.action in ("get", "set") and not args.key:
        parser.error(f"config {args.action} requires KEY")
    if args.command == "config" and args.action == "set" and args.value is None:
        parser.error("config set requires VALUE")

    configure_logging(level=args.log_level, json_output=args.json_logs or None)
    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f"Error: {e.reason}", file=sys.stderr)
        return 1


__all__ = ["PromptConfirmation", "build_parser", "main", "cmd_sync", "cmd_scan", "cmd_watch", "cmd_config"]
