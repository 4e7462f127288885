# src/task_tracker/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import cast

from ..core.errors import TaskValidationError, TrackerError, friendly_error_message
from ..core.state import AppState
from ..tasks.date_ranges import is_overdue
from ..tasks.task_logic import status_label
from ..tasks.task_models import ALL, Task, TaskCreateInput, TaskFilters, TaskPatch, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Tracker errors are turned into user-facing messages.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return await h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return await h2(state, args)
        except TrackerError as e:
            logger.info("/%s failed: %r", name, e)
            return friendly_error_message(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _split_options(args: list[str], keys: set[str]) -> tuple[list[str], dict[str, str]]:
    """Split "key=value" tokens (for known keys) from the free words."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        k, sep, v = a.partition("=")
        if sep and k.lower() in keys:
            opts[k.lower()] = v
        else:
            words.append(a)
    return words, opts


def _parse_status(raw: str) -> TaskStatus:
    key = raw.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return TaskStatus(key)
    except ValueError as e:
        valid = ", ".join(s.value for s in TaskStatus)
        raise TaskValidationError("status", f"Unknown status {raw!r}. Use one of: {valid}") from e


def _find_task(state: AppState, id_prefix: str) -> Task:
    prefix = id_prefix.strip()
    if not prefix:
        raise TaskValidationError("id", "Task id is required.")
    matches = [t for t in state.provider.get_snapshot().tasks if t.id.startswith(prefix)]
    if not matches:
        raise TaskValidationError("id", f"No task with id {prefix!r}.")
    if len(matches) > 1:
        raise TaskValidationError("id", f"Task id {prefix!r} is ambiguous ({len(matches)} matches).")
    return matches[0]


def format_task(task: Task) -> str:
    parts = [f"[{task.id[:8]}] {task.title}", task.ae or "-"]
    if task.account:
        parts[-1] += f" / {task.account}"
    parts.append(status_label(task.status))
    if task.due_date:
        due = f"due {task.due_date}"
        if is_overdue(task):
            due += " (overdue)"
        parts.append(due)
    return " | ".join(parts)


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_info(state: AppState, args: list[str]) -> str:
    snap = state.provider.get_snapshot()
    settings = state.settings
    return (
        "Info:\n"
        f"  App: {getattr(settings, 'app_name', 'task-tracker')}\n"
        f"  Backend: {getattr(settings, 'api_base_url', '?')}\n"
        f"  Data: {state.provider.phase.value}\n"
        f"  Tasks: {len(snap.tasks)}  AEs: {len(snap.aes)}  Accounts: {len(snap.accounts)}"
    )


_LIST_KEYS = {"q", "ae", "account", "status"}


async def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                 -> reuse the last filters
    /list reset           -> clear filters
    /list q=deck ae=Ava account=Acme status=WAITING week|overdue
    """
    words, opts = _split_options(args, _LIST_KEYS)
    flags = {w.lower() for w in words}

    filters = state.filters
    if "reset" in flags:
        filters = TaskFilters()
    if opts or flags - {"reset"}:
        status = filters.status
        if "status" in opts:
            raw = opts["status"].strip()
            status = ALL if raw.upper() in ("", ALL) else _parse_status(raw)
        # Date toggles are exclusive; any new filter line restates them.
        filters = replace(
            filters,
            query=opts.get("q", filters.query),
            ae=opts.get("ae", filters.ae) or ALL,
            account=opts.get("account", filters.account) or ALL,
            status=status,
            due_this_week="week" in flags,
            overdue="overdue" in flags and "week" not in flags,
        )
    state.filters = filters

    view = await state.provider.get_task_view(filters)
    if not view.active and not view.completed:
        return "No tasks match."

    lines: list[str] = []
    heading = "Due this week" if filters.due_this_week else "Overdue" if filters.overdue else "Active"
    lines.append(f"{heading} ({len(view.active)}):")
    lines.extend(f"  {format_task(t)}" for t in view.active)
    if view.completed:
        lines.append(f"Completed ({len(view.completed)}):")
        lines.extend(f"  {format_task(t)}" for t in view.completed)
    return "\n".join(lines)


_TASK_KEYS = {"ae", "account", "due", "status", "desc", "title"}


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add Prep QBR deck ae=Ava account=Acme due=2026-10-20 status=IN_PROGRESS"""
    words, opts = _split_options(args, _TASK_KEYS)
    title = opts.get("title") or " ".join(words)
    created = await state.provider.create_task(
        TaskCreateInput(
            title=title,
            ae=opts.get("ae", ""),
            account=opts.get("account") or None,
            description=opts.get("desc") or None,
            status=_parse_status(opts["status"]) if opts.get("status") else TaskStatus.BACKLOG,
            due_date=opts.get("due") or None,
        )
    )
    return f"Created {format_task(created)}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> title=... ae=... account=... due=YYYY-MM-DD|none desc=..."""
    if not args:
        return "Usage: /edit <id> [title=..] [ae=..] [account=..] [due=YYYY-MM-DD|none] [desc=..]"
    task = _find_task(state, args[0])
    _, opts = _split_options(args[1:], _TASK_KEYS)
    if not opts:
        return "Nothing to change."

    patch: TaskPatch = {}
    if "title" in opts:
        patch["title"] = opts["title"]
    if "desc" in opts:
        patch["description"] = opts["desc"] or None
    if "ae" in opts:
        patch["ae"] = opts["ae"]
    if "account" in opts:
        patch["account"] = opts["account"]
    if "due" in opts:
        patch["due_date"] = None if opts["due"].lower() in ("", "none") else opts["due"]
    if "status" in opts:
        patch["status"] = _parse_status(opts["status"])

    updated = await state.provider.update_task(task.id, patch)
    if updated is None:
        return "That task no longer exists."
    return f"Updated {format_task(updated)}"


async def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /move <id> <BACKLOG|IN_PROGRESS|WAITING|DONE>"
    task = _find_task(state, args[0])
    updated = await state.provider.update_task(task.id, {"status": _parse_status(" ".join(args[1:]))})
    if updated is None:
        return "That task no longer exists."
    return f"Moved {format_task(updated)}"


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    return await cmd_move(state, [args[0], TaskStatus.DONE.value])


async def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /delete <id>"
    task = _find_task(state, args[0])
    if emit:
        with contextlib.suppress(Exception):
            emit(f"Deleting {task.title!r}...")
    if await state.provider.delete_task(task.id):
        return f"Deleted [{task.id[:8]}] {task.title}"
    return "That task was already deleted."


async def cmd_aes(state: AppState, args: list[str]) -> str:
    aes = await state.provider.get_aes()
    if not aes:
        return "No AEs yet."
    colors = state.provider.get_snapshot().ae_colors
    return "AEs:\n" + "\n".join(f"  {name} {colors.get(name, '')}".rstrip() for name in aes)


async def cmd_accounts(state: AppState, args: list[str]) -> str:
    accounts = await state.provider.get_accounts()
    if not accounts:
        return "No accounts yet."
    return "Accounts:\n" + "\n".join(f"  {name}" for name in accounts)


async def cmd_ae(state: AppState, args: list[str]) -> str:
    """
    /ae add NAME  -> create an AE
    /ae rm NAME   -> delete an AE (refused while tasks reference it)
    """
    if len(args) < 2 or args[0].lower() not in ("add", "rm"):
        return "Usage: /ae add NAME | /ae rm NAME"
    name = " ".join(args[1:])
    if args[0].lower() == "add":
        created = await state.provider.create_ae(name)
        return f"AE {created.name} added."
    if await state.provider.delete_ae(name):
        return f"AE {name} deleted."
    return f"No AE named {name!r}."


async def cmd_account(state: AppState, args: list[str]) -> str:
    if len(args) < 2 or args[0].lower() not in ("add", "rm"):
        return "Usage: /account add NAME | /account rm NAME"
    name = " ".join(args[1:])
    if args[0].lower() == "add":
        created = await state.provider.create_account(name)
        return f"Account {created.name} added."
    if await state.provider.delete_account(name):
        return f"Account {name} deleted."
    return f"No account named {name!r}."


async def cmd_reconcile(state: AppState, args: list[str]) -> str:
    result = await state.provider.reconcile_ae_colors()
    msg = f"AE colors reconciled: {result.changed} changed."
    if result.unresolved:
        msg += f" {len(result.unresolved)} AE(s) still share a color (palette exhausted)."
    return msg


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("info", cmd_info, help_text="Show backend and data status.")
registry.register(
    "list", cmd_list, help_text="List tasks: /list [q=..] [ae=..] [account=..] [status=..] [week|overdue] [reset]."
)
registry.register("add", cmd_add, help_text="Create a task: /add TITLE ae=NAME [account=..] [due=..] [status=..].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit ID key=value ...")
registry.register("move", cmd_move, help_text="Change status: /move ID STATUS.")
registry.register("done", cmd_done, help_text="Mark a task done: /done ID.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete ID.", aliases=["rm"])
registry.register("aes", cmd_aes, help_text="List AEs with their colors.")
registry.register("ae", cmd_ae, help_text="Manage AEs: /ae add NAME | /ae rm NAME.")
registry.register("accounts", cmd_accounts, help_text="List accounts.")
registry.register("account", cmd_account, help_text="Manage accounts: /account add NAME | /account rm NAME.")
registry.register("reconcile", cmd_reconcile, help_text="Give AEs with duplicate or missing colors unique ones.")
