class SlackTodoError(Exception):
    """Base class for errors raised by the todo webhook."""


class ConfigurationError(SlackTodoError):
    """The signing secret is not configured."""


class AuthenticationError(SlackTodoError):
    """The request failed Slack signature verification.

    `reason` is for logs only and is never sent back to the caller.
    """

    def __init__(self, reason):
        super().__init__(reason.value)
        self.reason = reason


class AbortedBody(SlackTodoError):
    """The request stream ended before the body was fully received."""


class StoreError(SlackTodoError):
    """The todo store could not complete an operation."""
