"""Core modules for commonbin: command dispatch, parsing and context."""

from commonbin.core.command import Command
from commonbin.core.context import ExecutionContext
from commonbin.core.errors import (
    ChildProcessFailedError,
    CommandError,
    DispatchError,
    DuplicateCommandError,
    InvalidCommandError,
    InvalidPathError,
    MissingCommandError,
    ParseError,
    RegistrationError,
)

__all__ = [
    "ChildProcessFailedError",
    "Command",
    "CommandError",
    "DispatchError",
    "DuplicateCommandError",
    "ExecutionContext",
    "InvalidCommandError",
    "InvalidPathError",
    "MissingCommandError",
    "ParseError",
    "RegistrationError",
]
