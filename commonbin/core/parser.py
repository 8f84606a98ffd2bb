"""Argument parser adapter built on click.

Commands declare their flags here and get back a plain dict of parsed argv.
Declared flags go through click (types, choices, defaults); anything click does
not know is kept and parsed loosely, the way yargs-style parsers do:

    --key=value    key -> value (numeric strings become numbers)
    --key value    key -> value, when value does not start with "-"
    --key          key -> True
    --no-key       key -> False
    -abc           a, b, c -> True
    -- rest...     rest appended to positionals verbatim

Every key is also stored under its synonym (camelCase by default) and every
declared alias, so commands can read whichever spelling they prefer. The
dispatcher strips the redundant spellings again when it builds the context.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import click
from click.core import ParameterSource
from click.shell_completion import ShellComplete

from commonbin.core.argv import POSITIONALS, camel_case, coerce_value
from commonbin.core.errors import ParseError

CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_extra_args": True,
    "help_option_names": [],
}

_NUMBER_RE = re.compile(r"^-\d*\.?\d+$")


class NumberType(click.ParamType):
    """Integer when possible, float otherwise."""

    name = "number"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        result = coerce_value(str(value))
        if isinstance(result, str):
            self.fail(f"{value!r} is not a valid number.", param, ctx)
        return result


NUMBER = NumberType()

_TYPES: dict[Any, click.ParamType | None] = {
    None: click.STRING,
    "string": click.STRING,
    str: click.STRING,
    "number": NUMBER,
    int: click.INT,
    float: click.FLOAT,
    "boolean": None,
    bool: None,
}


@dataclass
class OptionSpec:
    """A declared flag."""

    name: str
    aliases: tuple[str, ...] = ()
    type: Any = None
    default: Any = None
    description: str = ""
    choices: tuple[str, ...] = ()

    @property
    def is_flag(self) -> bool:
        return _TYPES.get(self.type, click.STRING) is None or (
            self.type is None and isinstance(self.default, bool)
        )

    @property
    def param_name(self) -> str:
        name = re.sub(r"\W", "_", self.name)
        return name if name.isidentifier() else f"opt_{name}"


def _flag(name: str) -> str:
    return f"-{name}" if len(name) == 1 else f"--{name}"


@dataclass
class ArgvParser:
    """Turns a raw argument vector into parsed argv for one command scope.

    Args:
        prog: Program name shown in help and used for completion
        synonym: Derives the alternate spelling of a key (camelCase by default)
    """

    prog: str
    synonym: Callable[[str], str] = camel_case
    _options: dict[str, OptionSpec] = field(default_factory=dict, repr=False)
    _commands: dict[str, str] = field(default_factory=dict, repr=False)
    _usage: str | None = field(default=None, repr=False)

    def option(
        self,
        name: str,
        *,
        alias: str | Iterable[str] = (),
        type: Any = None,
        default: Any = None,
        description: str = "",
        choices: Iterable[str] = (),
    ) -> None:
        """Declare a flag. Declaring the same name again replaces it."""
        if not name:
            raise ValueError("option name is required")
        if type not in _TYPES:
            raise ValueError(f"Unsupported option type for '{name}': {type!r}")
        aliases = (alias,) if isinstance(alias, str) else tuple(alias)
        self._options[name] = OptionSpec(
            name=name,
            aliases=aliases,
            type=type,
            default=default,
            description=description,
            choices=tuple(choices),
        )

    def options(self, options: Mapping[str, Mapping[str, Any]]) -> None:
        """Declare several flags at once: ``{"port": {"type": int, "alias": "p"}}``."""
        for name, spec in options.items():
            self.option(name, **spec)

    def usage(self, text: str) -> None:
        self._usage = text

    def command(self, name: str, description: str = "") -> None:
        """List a subcommand in help output. Does not affect parsing."""
        self._commands[name] = description

    def global_options(self) -> None:
        """Declare --help/-h and --version/-v."""
        self.option("help", alias="h", type=bool, description="Show help")
        self.option("version", alias="v", type=bool, description="Show version number")

    @property
    def declared(self) -> dict[str, OptionSpec]:
        return dict(self._options)

    @property
    def aliases(self) -> dict[str, list[str]]:
        """Canonical key -> every other key the same flag is stored under."""
        result: dict[str, list[str]] = {}
        for spec in self._options.values():
            keys: list[str] = []
            for key in (spec.name, *spec.aliases):
                for candidate in (key, self.synonym(key)):
                    if candidate != spec.name and candidate not in keys:
                        keys.append(candidate)
            result[spec.name] = keys
        return result

    def parse(self, raw_argv: Sequence[str]) -> dict[str, Any]:
        """Parse a raw argument vector.

        Raises:
            ParseError: If a declared flag is given an invalid value
        """
        head, tail = _split_terminator(list(raw_argv))
        command = self._build(click.Command)

        try:
            ctx = command.make_context(self.prog, head)
        except click.ClickException as e:
            raise ParseError(e.format_message()) from e

        parsed: dict[str, Any] = {POSITIONALS: []}
        # Keys holding a default; a leftover token for one of them replaces it
        defaulted: set[str] = set()
        for spec in self._options.values():
            source = ctx.get_parameter_source(spec.param_name)
            if source is ParameterSource.DEFAULT and spec.default is None:
                continue
            value = ctx.params.get(spec.param_name)
            for key in (spec.name, *spec.aliases):
                self._store(parsed, key, value, replace=True)
                if source is ParameterSource.DEFAULT:
                    defaulted.update((key, self.synonym(key)))

        self._consume(parsed, ctx.args, defaulted)
        parsed[POSITIONALS].extend(tail)
        return parsed

    def format_help(self) -> str:
        command = self._build(click.Group if self._commands else click.Command)
        return command.get_help(click.Context(command, info_name=self.prog))

    def get_completions(self, args: Sequence[str]) -> list[str]:
        """Complete the last word of ``args`` against commands and flags."""
        args = list(args)
        incomplete = args.pop() if args else ""
        command = self._build(click.Group if self._commands else click.Command)
        completer = ShellComplete(command, {}, self.prog, "_COMMONBIN_COMPLETE")
        return [item.value for item in completer.get_completions(args, incomplete)]

    def _build(self, cls: type[click.Command]) -> click.Command:
        params = [self._click_option(spec) for spec in self._options.values()]
        kwargs: dict[str, Any] = {
            "params": params,
            "help": self._usage,
            "context_settings": CONTEXT_SETTINGS,
            "add_help_option": False,
        }
        if issubclass(cls, click.Group):
            kwargs["commands"] = {
                name: click.Command(name, help=description or None)
                for name, description in self._commands.items()
            }
            kwargs["invoke_without_command"] = True
        return cls(self.prog, **kwargs)

    @staticmethod
    def _click_option(spec: OptionSpec) -> click.Option:
        name = _flag(spec.name)
        if spec.is_flag and spec.default is not None and len(spec.name) > 1:
            name = f"{name}/--no-{spec.name}"
        decls = [name, *(_flag(a) for a in spec.aliases), spec.param_name]
        kwargs: dict[str, Any] = {"help": spec.description or None, "default": spec.default}
        if spec.is_flag:
            kwargs["is_flag"] = True
        elif spec.choices:
            kwargs["type"] = click.Choice(spec.choices)
        else:
            kwargs["type"] = _TYPES[spec.type]
        if spec.default is not None and not spec.is_flag:
            kwargs["show_default"] = True
        return click.Option(decls, **kwargs)

    def _store(self, parsed: dict[str, Any], key: str, value: Any, replace: bool = False) -> None:
        keys = [key]
        synonym = self.synonym(key)
        if synonym != key:
            keys.append(synonym)

        for k in keys:
            if not replace and k in parsed and k != POSITIONALS:
                current = parsed[k]
                parsed[k] = [*current, value] if isinstance(current, list) else [current, value]
            else:
                parsed[k] = value

    def _consume(self, parsed: dict[str, Any], tokens: list[str], defaulted: set[str]) -> None:
        """Parse the tokens click left over (undeclared flags and positionals).

        The first value given for a key in ``defaulted`` overrides its default
        instead of being collected with it.
        """

        def put(key: str, value: Any) -> None:
            replace = key in defaulted
            defaulted.difference_update((key, self.synonym(key)))
            self._store(parsed, key, value, replace=replace)

        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token.startswith("--") and len(token) > 2:
                body = token[2:]
                if "=" in body:
                    key, raw = body.split("=", 1)
                    put(key, coerce_value(raw))
                elif body.startswith("no-") and len(body) > 3:
                    put(body[3:], False)
                elif i + 1 < len(tokens) and not tokens[i + 1].startswith("-"):
                    put(body, coerce_value(tokens[i + 1]))
                    i += 1
                else:
                    put(body, True)
            elif token.startswith("-") and len(token) > 1 and not _NUMBER_RE.match(token):
                body = token[1:]
                if "=" in body:
                    key, raw = body.split("=", 1)
                    put(key, coerce_value(raw))
                else:
                    for letter in body:
                        put(letter, True)
            else:
                parsed[POSITIONALS].append(token)
            i += 1


def _split_terminator(tokens: list[str]) -> tuple[list[str], list[str]]:
    if "--" not in tokens:
        return tokens, []
    index = tokens.index("--")
    return tokens[:index], tokens[index + 1:]
