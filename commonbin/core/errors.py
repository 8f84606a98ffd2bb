"""Error kinds raised by the command framework.

Registration errors signal a wiring mistake in the command tree and are raised
immediately, before any dispatch happens. Parse and child-process errors are
recoverable where they are awaited; unhandled, they reach ``Command.start``.
"""


class CommandError(Exception):
    """Base error for the command framework."""

    pass


class RegistrationError(CommandError):
    """Command tree wiring is invalid."""

    pass


class InvalidPathError(RegistrationError):
    """Path given for command loading is missing or of the wrong kind."""

    pass


class DuplicateCommandError(RegistrationError):
    """Command name is already registered."""

    pass


class MissingCommandError(RegistrationError):
    """Alias refers to a command that has not been registered."""

    pass


class InvalidCommandError(RegistrationError):
    """Registration target does not resolve to a Command subclass."""

    pass


class ParseError(CommandError):
    """Argument parser rejected the raw argument vector."""

    pass


class ChildProcessFailedError(CommandError):
    """Child process exited with a nonzero code or could not be started.

    ``code`` is the exit code, or None when the OS failed to start the process.
    """

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class DispatchError(CommandError):
    """Uncaught failure raised from a command's run behavior."""

    pass
