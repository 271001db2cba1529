#!/usr/bin/env python3
"""
notevault CLI - browse and edit the virtual filesystem, chat with agents
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from config.loader import load_config
from config.schema import NotevaultSettings
from core.chat import (
    AgentConfigError,
    ChatCompletionError,
    ChatSession,
    MalformedDocumentError,
    MissingAPIKeyError,
)
from core.filesystem import FileSystemAPI, InvalidPathError
from storage import StoreError, build_record_store

logger = logging.getLogger(__name__)

_HANDLED_ERRORS = (
    StoreError,
    InvalidPathError,
    MalformedDocumentError,
    ChatCompletionError,
    MissingAPIKeyError,
    AgentConfigError,
    FileNotFoundError,
    FileExistsError,
    ValueError,
)


def format_timestamp(timestamp_ms: int | None) -> str:
    if not timestamp_ms:
        return ""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def setup_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _print_warnings(console: Console, warnings: list[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")


async def cmd_ls(fs: FileSystemAPI, args: argparse.Namespace, console: Console) -> int:
    entries = await fs.list_files(args.directory)
    if not entries:
        console.print(f"[yellow]{args.directory} is empty[/yellow]")
        return 0
    table = Table(title=args.directory)
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Path", style="white")
    for entry in entries:
        name = f"{entry.name}/" if entry.is_dir else entry.name
        table.add_row(name, entry.type, entry.path)
    console.print(table)
    return 0


async def cmd_cat(fs: FileSystemAPI, args: argparse.Namespace, console: Console) -> int:
    record = await fs.get_file(args.path)
    if record is None:
        console.print(f"[red]File {args.path} not found[/red]")
        return 1
    console.print(record.content, markup=False, highlight=False)
    return 0


async def cmd_write(fs: FileSystemAPI, args: argparse.Namespace, console: Console) -> int:
    if args.file:
        content = Path(args.file).read_text(encoding="utf-8")
    elif args.text is not None:
        content = args.text
    else:
        content = sys.stdin.read()
    result = await fs.save_file(args.path, content)
    _print_warnings(console, result.warnings)
    if result.backup:
        console.print(f"[dim]Backup: {result.backup.path}[/dim]")
    console.print(f"[green]Saved {result.record.path}[/green]")
    return 0


async def cmd_touch(fs: FileSystemAPI, args: argparse.Namespace, console: Console) -> int:
    result = await fs.create_file(args.path, args.text)
    console.print(f"[green]Created {result.record.path}[/green]")
    return 0


async def cmd_rm(fs: FileSystemAPI, args: argparse.Namespace, console: Console) -> int:
    result = await fs.delete_file(args.path)
    _print_warnings(console, result.warnings)
    if not result.existed:
        console.print(f"[yellow]{args.path} did not exist[/yellow]")
        return 0
    if result.backup:
        console.print(f"[dim]Backup: {result.backup.path}[/dim]")
    console.print(f"[green]Deleted {args.path}[/green]")
    return 0


async def cmd_backups(fs: FileSystemAPI, args: argparse.Namespace, console: Console) -> int:
    backups = await fs.list_backups(args.path)
    if not backups:
        console.print(f"[yellow]No backups for {args.path}[/yellow]")
        return 0
    table = Table(title=f"Backups: {args.path}")
    table.add_column("Path", style="cyan")
    table.add_column("Created", style="green")
    for record in backups:
        table.add_row(record.path, format_timestamp(record.timestamp))
    console.print(table)
    return 0


async def cmd_chat(session: ChatSession, args: argparse.Namespace, console: Console) -> int:
    if args.chat_command == "new":
        result = await session.new_chat(args.name)
        console.print(f"[green]Created {result.record.path}[/green]")
        return 0

    if args.chat_command == "show":
        chat = await session.load_chat(args.chat)
        for msg in chat.messages:
            style = {"user": "cyan", "agent": "green", "error": "red"}[msg.sender]
            console.print(f"[{style}]{msg.sender}[/{style}] [dim]{format_timestamp(msg.timestamp)}[/dim]")
            console.print(msg.text, markup=False, highlight=False)
        return 0

    console.print("[dim]Sending request to AI...[/dim]")
    result = await session.send_message(args.chat, args.text, args.agent)
    _print_warnings(console, result.save.warnings)
    if not result.ok:
        console.print(f"[red]API Error: {result.error}[/red]")
        return 1
    console.print(result.reply.text, markup=False, highlight=False)
    return 0


async def cmd_key(session: ChatSession, args: argparse.Namespace, console: Console) -> int:
    result = await session.store_api_key(args.key)
    _print_warnings(console, result.warnings)
    console.print("[green]API key saved.[/green]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="notevault", description="notevault - notes and chats in a local vault")
    parser.add_argument("--db", help="Database path (overrides config)")
    parser.add_argument("--workspace", help="Project directory holding .notevault/config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ls", help="List a directory")
    p.add_argument("directory", nargs="?", default="/")

    p = sub.add_parser("cat", help="Print a file")
    p.add_argument("path")

    p = sub.add_parser("write", help="Save a file (backs up the previous version)")
    p.add_argument("path")
    p.add_argument("text", nargs="?", help="Content (reads stdin when omitted)")
    p.add_argument("--file", help="Read content from a local file")

    p = sub.add_parser("touch", help="Create a new file (starter content by directory and extension)")
    p.add_argument("path")
    p.add_argument("text", nargs="?", help="Initial content instead of the starter template")

    p = sub.add_parser("rm", help="Delete a file (backs it up first)")
    p.add_argument("path")

    p = sub.add_parser("backups", help="List backups of a file")
    p.add_argument("path")

    chat = sub.add_parser("chat", help="Chat transcripts")
    chat_sub = chat.add_subparsers(dest="chat_command", required=True)
    p = chat_sub.add_parser("new", help="Create an empty chat")
    p.add_argument("name")
    p = chat_sub.add_parser("show", help="Print a chat transcript")
    p.add_argument("chat")
    p = chat_sub.add_parser("send", help="Send a message and save the reply")
    p.add_argument("chat")
    p.add_argument("text")
    p.add_argument("--agent", default="/agents/example-agent.json")

    key = sub.add_parser("key", help="API key storage")
    key_sub = key.add_subparsers(dest="key_command", required=True)
    p = key_sub.add_parser("set", help="Store the completion API key in /secrets/api_keys.json")
    p.add_argument("key")

    return parser


async def run(args: argparse.Namespace, settings: NotevaultSettings, console: Console) -> int:
    store = build_record_store(settings)
    fs = FileSystemAPI(store, backup_directory=settings.store.backup_directory)
    try:
        if args.command in ("chat", "key"):
            session = ChatSession(fs, settings.chat)
            handler: Any = cmd_chat if args.command == "chat" else cmd_key
            return await handler(session, args, console)
        handlers = {
            "ls": cmd_ls,
            "cat": cmd_cat,
            "write": cmd_write,
            "rm": cmd_rm,
            "touch": cmd_touch,
            "backups": cmd_backups,
        }
        return await handlers[args.command](fs, args, console)
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()

    overrides: dict[str, Any] = {}
    if args.db:
        overrides["store"] = {"db_path": args.db}
    try:
        settings = load_config(workspace_root=args.workspace, cli_overrides=overrides or None)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        return 1

    setup_logging(settings.logging.level, args.verbose)
    try:
        return asyncio.run(run(args, settings, console))
    except _HANDLED_ERRORS as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
