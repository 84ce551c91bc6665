# src/work_interruption/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..provider.errors import ProviderError
from ..tasks import task_api
from ..tasks.task_models import Task, TaskCategory

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /start, ...)."""

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

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Provider errors become the reply; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        nparams = len(inspect.signature(handler).parameters)

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)

            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ProviderError as e:
            logger.info("/%s failed: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ms(ms: int | None) -> str:
    if ms is None:
        return "-"
    return datetime.fromtimestamp(ms / 1000).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _fmt_duration(ms: int | None) -> str:
    if ms is None:
        return "running"
    total_s = ms // 1000
    h, rem = divmod(total_s, 3600)
    m, s = divmod(rem, 60)
    return f"{h:d}:{m:02d}:{s:02d}"


def _fmt_task(task: Task) -> str:
    return f"#{task.id} {task.category:<9} {_fmt_ms(task.started)}  {_fmt_duration(task.duration)}"


def _parse_id(args: list[str]) -> int | None:
    if not args or not args[0].isdigit():
        return None
    return int(args[0])


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    open_task = task_api.find_open_task(state.provider)
    current = _fmt_task(open_task) if open_task else "nothing running"
    return (
        "Status:\n"
        f"  Database: {getattr(settings, 'tasks_db_path', '?')}\n"
        f"  Tasks stored: {state.provider.db.count_tasks()}\n"
        f"  Current: {current}"
    )


def cmd_start(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /start <category>               -> close the running task, start a new one now
    /start <category> --at <millis> -> same, at an explicit epoch-millis timestamp
    """
    if not args:
        known = ", ".join(c.value for c in TaskCategory)
        return f"Usage: /start <category> [--at <millis>]. Known categories: {known}."

    category = args[0].lower()
    at_ms: int | None = None
    if len(args) >= 3 and args[1] == "--at":
        if not args[2].isdigit():
            return "Usage: /start <category> [--at <millis>]."
        at_ms = int(args[2])

    if category not in {c.value for c in TaskCategory} and emit is not None:
        emit(f"Note: '{category}' is not one of the standard categories.")

    with state.lock:
        address = task_api.start_task(state.provider, category, at_ms=at_ms)
    return f"Started {category} ({address})."


def cmd_stop(state: AppState, args: list[str]) -> str:
    with state.lock:
        task = task_api.stop_open_task(state.provider)
    if task is None:
        return "Nothing is running."
    return f"Stopped {_fmt_task(task)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> last 20 tasks
    /list <category> -> last 20 tasks of one category
    """
    category = args[0].lower() if args else None
    tasks = task_api.list_tasks(state.provider, category=category, limit=20)
    if not tasks:
        return "No tasks stored."
    return "\n".join(_fmt_task(t) for t in tasks)


def cmd_show(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /show <id>."
    task = task_api.get_task(state.provider, task_id)
    if task is None:
        return f"Task #{task_id} not found."
    return _fmt_task(task)


def cmd_export(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /export <id>."
    text = task_api.export_task_text(state.provider, task_id)
    return text.rstrip("\n") or "(empty export)"


def cmd_delete(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /delete <id>."
    count = state.provider.delete(task_api.task_address(task_id))
    if count == 0:
        return f"Task #{task_id} not found."
    return f"Task #{task_id} deleted."


def cmd_clear(state: AppState, args: list[str]) -> str:
    with state.lock:
        count = state.provider.delete(task_api.TASKS_ADDRESS)
    return f"Deleted {count} task(s)."


def _start_shortcut(category: str) -> CommandHandler3:
    def handler(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
        return cmd_start(state, [category, *args], emit)

    return handler


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database and the running task.")
registry.register(
    "start",
    cmd_start,
    help_text="Switch to a category: /start work|break|meeting|interrupt [--at <millis>].",
)
for _category in TaskCategory:
    registry.register(_category.value, _start_shortcut(_category.value), f"Shortcut for /start {_category.value}.")
registry.register("stop", cmd_stop, help_text="Stop the running task.")
registry.register("list", cmd_list, help_text="List recent tasks: /list [category].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("export", cmd_export, help_text="Print the text/plain export of a task: /export <id>.")
registry.register("delete", cmd_delete, help_text="Delete one task: /delete <id>.", aliases=["rm"])
registry.register("clear", cmd_clear, help_text="Delete all tasks.")
