import logging
from typing import Awaitable, Callable, Dict

from slacktodo.data.store import TodoStore
from slacktodo.forms import SlashCommand
from slacktodo.logic.handlers import (
    CommandOutcome, OutcomeStatus, add_todo, list_todos, mark_done,
)

logger = logging.getLogger(__name__)

Handler = Callable[[SlashCommand, TodoStore], Awaitable[CommandOutcome]]


def normalize_command(name: str) -> str:
    return name.strip().lstrip("/").lower()


class CommandRouter:
    """Maps slash-command names to handlers and runs them against a store."""

    def __init__(self, handlers: Dict[str, Handler] = None):
        self.handlers: Dict[str, Handler] = {}
        for name, handler in (handlers or {}).items():
            self.register(name, handler)

    def register(self, name: str, handler: Handler) -> None:
        self.handlers[normalize_command(name)] = handler

    async def dispatch(self, name: str, command: SlashCommand, store: TodoStore) -> CommandOutcome:
        handler = self.handlers.get(normalize_command(name))
        if handler is None:
            logger.info("Unknown command %r from %s", name, command.user_id)
            return CommandOutcome(OutcomeStatus.INVALID, f"Unknown command: {name}")

        try:
            outcome = await handler(command, store)
        except Exception:
            # Past verification every failure is still a 200 envelope
            logger.exception("Unhandled error running /%s", normalize_command(name))
            return CommandOutcome(OutcomeStatus.STORE_FAILURE, "Something went wrong. Please try again.")

        logger.info("/%s for %s -> %s", normalize_command(name), command.user_id, outcome.status.value)
        return outcome


def default_command_router() -> CommandRouter:
    return CommandRouter({"add": add_todo, "done": mark_done, "list": list_todos})
