"""Execution context handed to a command's run behavior.

The context is derived once per command from the parsed argv: global flags and
redundant key spellings are deleted, interpreter-level flags are moved into
``exec_argv`` and friends. Fields that were not derived stay unset, so callers
branch on ``ctx.has("exec_argv")`` rather than on empty values.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from commonbin.core.argv import POSITIONALS, ExecArgv, extract_exec_argv, unparse_argv
from commonbin.core.config import ParserOptions
from commonbin.core.errors import ParseError
from commonbin.core.parser import ArgvParser

logger = logging.getLogger(__name__)

GLOBAL_KEYS = ("help", "h", "version", "v")


class ExecutionContext(BaseModel):
    """Normalized inputs of one command run."""

    model_config = ConfigDict(frozen=True)

    argv: dict[str, Any]
    raw_argv: list[str]
    cwd: Path
    env: dict[str, str]

    exec_argv: list[str] | None = None
    exec_argv_obj: dict[str, Any] | None = None
    debug_options: dict[str, Any] | None = None
    debug_port: int | None = None

    @property
    def positionals(self) -> list[Any]:
        return self.argv.get(POSITIONALS, [])

    def has(self, name: str) -> bool:
        """Whether an optional field was derived for this run."""
        return name in self.model_fields_set


def build_context(
    parsed: Mapping[str, Any],
    raw_argv: list[str],
    parser: ArgvParser,
    options: ParserOptions,
    env: Mapping[str, str],
    cwd: Path,
) -> ExecutionContext:
    """Derive the execution context from parsed argv.

    Args:
        parsed: Parsed argv as returned by ``ArgvParser.parse``
        raw_argv: Raw argument vector of the command
        parser: Parser that produced ``parsed`` (aliases and synonym rule)
        options: Which cleanup steps to apply
        env: Environment snapshot
        cwd: Working directory

    Returns:
        ExecutionContext; exec-argv fields are set only when a flag matched.

    Raises:
        ParseError: If the debug option variable cannot be split into tokens
    """
    argv = dict(parsed)
    argv[POSITIONALS] = list(argv.get(POSITIONALS, []))
    fields: dict[str, Any] = {
        "argv": argv,
        "raw_argv": list(raw_argv),
        "cwd": cwd,
        "env": dict(env),
    }

    for key in GLOBAL_KEYS:
        argv.pop(key, None)

    if options.remove_alias:
        for keys in parser.aliases.values():
            for key in keys:
                argv.pop(key, None)

    if options.remove_camel_case:
        for key in [k for k in argv if "-" in k]:
            synonym = parser.synonym(key)
            if synonym != key:
                argv.pop(synonym, None)

    if options.exec_argv:
        extracted = extract_exec_argv(argv, options)

        debug_option = env.get(options.debug_env)
        if debug_option:
            logger.info(f"Use ${options.debug_env}: {debug_option}")
            try:
                tokens = shlex.split(debug_option)
            except ValueError as e:
                raise ParseError(f"${options.debug_env}: {e}") from e
            from_env = ArgvParser(parser.prog, synonym=parser.synonym).parse(tokens)
            extracted.merge(extract_exec_argv(from_env, options))

        if "expose_debug_as" in extracted.exec_argv_obj:
            logger.warning("--expose_debug_as is not supported by the inspector protocol")

        for key in extracted.exec_argv_obj:
            argv.pop(key, None)
            argv.pop(parser.synonym(key), None)

        if extracted.exec_argv_obj:
            fields.update(_exec_fields(extracted))

    return ExecutionContext(**fields)


def _exec_fields(extracted: ExecArgv) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exec_argv": unparse_argv(extracted.exec_argv_obj),
        "exec_argv_obj": extracted.exec_argv_obj,
        "debug_options": extracted.debug_options,
    }
    if extracted.debug_port is not None:
        fields["debug_port"] = extracted.debug_port
    return fields
