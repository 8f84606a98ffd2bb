"""Argument vector transformations shared by the dispatcher and supervisor.

Parsed argv is a plain dict: flag name -> value, with the ``"_"`` key holding
the ordered positional arguments. The helpers here convert flag names between
naming conventions, turn parsed argv back into flag strings, and pull the
interpreter-level (debug/inspect/harmony) flags out of a command's argv.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from commonbin.core.config import ParserOptions


POSITIONALS = "_"

_INT_RE = re.compile(r"^-?(0|[1-9]\d*)$")
_FLOAT_RE = re.compile(r"^-?\d*\.\d+$")


def camel_case(key: str) -> str:
    """Convert a hyphenated flag name to camelCase: ``debug-brk`` -> ``debugBrk``."""
    head, *rest = key.split("-")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def kebab_case(key: str) -> str:
    """Convert a camelCase flag name to hyphenated form: ``debugBrk`` -> ``debug-brk``."""
    return re.sub(r"([a-z0-9])([A-Z])", lambda m: f"{m[1]}-{m[2].lower()}", key)


def coerce_value(text: str) -> Any:
    """Turn numeric strings into numbers, leave everything else untouched."""
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return text


def match_key(key: str, patterns: Iterable[str | re.Pattern[str]]) -> bool:
    """Check a key against exact names and regular expressions.

    Strings starting with ``^`` are treated as regular expressions, any other
    string must equal the key.
    """
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            if pattern.search(key):
                return True
        elif pattern.startswith("^"):
            if re.search(pattern, key):
                return True
        elif pattern == key:
            return True
    return False


def unparse_argv(
    argv: Mapping[str, Any],
    includes: Iterable[str | re.Pattern[str]] | None = None,
    excludes: Iterable[str | re.Pattern[str]] | None = None,
) -> list[str]:
    """Revert parsed argv to a list of flag strings.

    ``True`` becomes ``--key``, ``False`` becomes ``--no-key``, lists repeat
    the flag, ``None`` is skipped. camelCase keys are written hyphenated, so a
    flag parsed into both ``debug-brk`` and ``debugBrk`` appears once.
    Positionals from the ``"_"`` key are appended after the flags.

    Example:
        >>> unparse_argv({"debug": 7000, "debug-brk": True, "debugBrk": True})
        ['--debug=7000', '--debug-brk']
    """
    includes = list(includes) if includes is not None else None
    excludes = list(excludes or [])

    flags: list[str] = []
    positionals: list[str] = []

    for key, value in argv.items():
        if key == POSITIONALS:
            positionals.extend(str(item) for item in value)
            continue
        if includes is not None and not match_key(key, includes):
            continue
        if excludes and match_key(key, excludes):
            continue

        name = kebab_case(key)
        flag = f"-{name}" if len(name) == 1 else f"--{name}"

        if value is None:
            continue
        if value is True:
            flags.append(flag)
        elif value is False:
            flags.append(f"--no-{name}")
        elif isinstance(value, (list, tuple)):
            flags.extend(f"{flag}={item}" for item in value)
        else:
            flags.append(f"{flag}={value}")

    return list(dict.fromkeys(flags)) + positionals


@dataclass
class ExecArgv:
    """Interpreter-level flags found in a parsed argv."""

    debug_port: int | None = None
    debug_options: dict[str, Any] = field(default_factory=dict)
    exec_argv_obj: dict[str, Any] = field(default_factory=dict)

    def merge(self, other: ExecArgv) -> None:
        """Merge ``other`` over this one.

        Flags from ``other`` overwrite conflicting flags here; its debug port
        is taken only when no port was set here.
        """
        if self.debug_port is None:
            self.debug_port = other.debug_port
        self.debug_options.update(other.debug_options)
        self.exec_argv_obj.update(other.exec_argv_obj)


def extract_exec_argv(argv: Mapping[str, Any], options: ParserOptions | None = None) -> ExecArgv:
    """Collect debug/inspect keys and exec-flag patterns from parsed argv.

    A debug key with an integer value (``--inspect=9229``) also sets the
    debug port. Keys whose value is None are skipped.
    """
    options = options or ParserOptions()
    result = ExecArgv()

    for key, value in argv.items():
        if value is None or key == POSITIONALS:
            continue
        if key in options.debug_keys:
            if isinstance(value, int) and not isinstance(value, bool):
                result.debug_port = value
            result.debug_options[key] = value
            result.exec_argv_obj[key] = value
        elif match_key(key, options.exec_argv_patterns):
            result.exec_argv_obj[key] = value

    return result
