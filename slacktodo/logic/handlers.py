import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum

from slacktodo.data.store import TodoStore
from slacktodo.errors import StoreError
from slacktodo.forms import SlashCommand

logger = logging.getLogger(__name__)

# ASCII digits only, optionally signed
TODO_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


class OutcomeStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    STORE_FAILURE = "store_failure"


@dataclass(frozen=True)
class CommandOutcome:
    """
    Result of one slash command.

    Every status renders to the same ephemeral envelope with HTTP 200; the
    status only tells callers (and tests) which path was taken.
    """
    status: OutcomeStatus
    message: str

    def to_response(self) -> dict:
        return {"response_type": "ephemeral", "text": self.message}


def _ok(message: str) -> CommandOutcome:
    return CommandOutcome(OutcomeStatus.OK, message)


def _invalid(message: str) -> CommandOutcome:
    return CommandOutcome(OutcomeStatus.INVALID, message)


MISSING_USER = _invalid("Could not identify the requesting user.")


async def add_todo(command: SlashCommand, store: TodoStore) -> CommandOutcome:
    task = command.text.strip()
    if not task:
        return _invalid("Please provide a task to add. Usage: /add <task>")
    if not command.user_id:
        return MISSING_USER

    try:
        todo = await asyncio.to_thread(store.create, command.user_id, task)
    except StoreError:
        logger.exception("Error adding todo for %s", command.user_id)
        return CommandOutcome(OutcomeStatus.STORE_FAILURE, "Error adding todo. Please try again.")
    return _ok(f'✅ Added todo: "{todo.task}"')


async def mark_done(command: SlashCommand, store: TodoStore) -> CommandOutcome:
    raw_id = command.text.strip()
    if not raw_id:
        return _invalid("Please provide a todo ID. Usage: /done <id>")
    if not TODO_ID_PATTERN.fullmatch(raw_id):
        return _invalid("Please provide a valid todo ID number.")
    todo_id = int(raw_id)
    if not command.user_id:
        return MISSING_USER

    try:
        todo = await asyncio.to_thread(store.mark_complete, todo_id, command.user_id)
    except StoreError:
        logger.exception("Error marking todo %s as done for %s", todo_id, command.user_id)
        return CommandOutcome(OutcomeStatus.STORE_FAILURE, "Error marking todo as done. Please try again.")

    if todo is None:
        # Same answer for "no such id" and "someone else's id"
        return CommandOutcome(OutcomeStatus.NOT_FOUND,
                              "Todo not found or you don't have permission to modify it.")
    return _ok(f'✅ Marked todo as done: "{todo.task}"')


def render_todo_list(todos) -> str:
    pending = [t for t in todos if not t.completed]
    completed = [t for t in todos if t.completed]

    sections = []
    if pending:
        lines = ["*📝 Pending Todos:*"] + [f"{t.id}. {t.task}" for t in pending]
        sections.append("\n".join(lines))
    if completed:
        lines = ["*✅ Completed Todos:*"] + [f"{t.id}. ~{t.task}~" for t in completed]
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


async def list_todos(command: SlashCommand, store: TodoStore) -> CommandOutcome:
    if not command.user_id:
        return MISSING_USER

    try:
        todos = await asyncio.to_thread(store.list_for_user, command.user_id)
    except StoreError:
        logger.exception("Error listing todos for %s", command.user_id)
        return CommandOutcome(OutcomeStatus.STORE_FAILURE, "Error retrieving todos. Please try again.")

    if not todos:
        return _ok("No todos found. Use /add to create your first todo!")
    return _ok(render_todo_list(todos))
