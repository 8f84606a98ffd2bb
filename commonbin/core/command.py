"""Command tree and recursive dispatch.

A CLI is a tree of Command subclasses. The root command is constructed with
the raw argument vector and started; dispatch parses the vector, and when the
first positional names a registered subcommand, hands a copy of the vector
(minus that token) to a new instance of the subcommand, recursively. The
command where dispatch stops derives its execution context and runs.

Example:
    class Build(Command):
        description = "Build the project"

        async def run(self, ctx):
            await self.supervisor.run_spawned("make", ctx.positionals)

    class Main(Command):
        name = "my-tool"
        version = "1.0.0"

        def __init__(self, raw_argv=None, **kwargs):
            super().__init__(raw_argv, **kwargs)
            self.add("build", Build)
            self.load_directory(Path(__file__).parent / "commands")

    Main().start()
"""

from __future__ import annotations

import asyncio
import hashlib
import importlib.util
import logging
import os
import sys
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn, Union

import click
from rich.console import Console

from commonbin.core.argv import POSITIONALS
from commonbin.core.config import CommonBinConfig, ParserOptions, load_config
from commonbin.core.context import GLOBAL_KEYS, ExecutionContext, build_context
from commonbin.core.errors import (
    CommandError,
    DispatchError,
    DuplicateCommandError,
    InvalidCommandError,
    InvalidPathError,
    MissingCommandError,
)
from commonbin.core.invoke import call_fn
from commonbin.core.log import configure_logging
from commonbin.core.parser import ArgvParser

if TYPE_CHECKING:
    from commonbin.process.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)

console = Console(stderr=True)

COMMAND_SUFFIX = ".py"

CommandTarget = Union[
    type["Command"],
    str,
    os.PathLike,
    Callable[["Command"], type["Command"]],
]


class Command:
    """Base class of every command.

    Subclasses set ``description`` (shown in the parent's help), optionally
    ``aliases`` and ``version``, declare flags in ``__init__`` and override
    ``run``. ``run`` may be a plain method, a coroutine, or a generator that
    yields awaitables.

    Attributes:
        raw_argv: Argument vector of this command scope (never mutated in place)
        parser: Argument parser adapter for this scope
        parser_options: Context derivation switches (a copy per command)
        supervisor: Process supervisor shared by the whole dispatch chain
    """

    name: str = "commonbin"
    description: str = ""
    aliases: tuple[str, ...] = ()
    version: str | None = None

    def __init__(
        self,
        raw_argv: Iterable[str] | None = None,
        *,
        prog: str | None = None,
        config: CommonBinConfig | None = None,
        supervisor: ProcessSupervisor | None = None,
    ):
        self.raw_argv = list(raw_argv) if raw_argv is not None else sys.argv[1:]
        self.config = config or load_config()
        self.parser_options = _copy_parser_options(self.config)
        # Imported here: commonbin.process.supervisor imports commonbin.core.
        from commonbin.process.supervisor import ProcessSupervisor

        self.supervisor = supervisor or ProcessSupervisor()
        self.prog = prog or self.name
        self.parser = ArgvParser(self.prog)

        self._commands: dict[str, type[Command]] = {}
        self._parsed: dict[str, Any] | None = None
        self._context: ExecutionContext | None = None
        self._usage: str | None = None

        logger.debug(f"[{type(self).__name__}] origin argument `{' '.join(self.raw_argv)}`")

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger(f"commonbin.command.{type(self).__name__}")

    @property
    def options(self) -> dict[str, Any]:
        return self.parser.declared

    @options.setter
    def options(self, options: Mapping[str, Mapping[str, Any]]) -> None:
        """Declare flags, merged with the ones declared before."""
        self.parser.options(options)

    @property
    def usage(self) -> str | None:
        return self._usage

    @usage.setter
    def usage(self, usage: str) -> None:
        self._usage = usage
        self.parser.usage(usage)

    @property
    def commands(self) -> dict[str, type[Command]]:
        """Registered subcommands, aliases included."""
        return dict(self._commands)

    def run(self, ctx: ExecutionContext) -> Any:
        """Command behavior. Shows help unless overridden."""
        self.show_help()

    def show_help(self) -> None:
        click.echo(self.parser.format_help())

    # --- registration ---

    def add(self, name: str, target: CommandTarget) -> None:
        """Register a subcommand.

        Args:
            name: Command name, matched against the first positional argument
            target: Command subclass, path to a ``.py`` file exporting one,
                or a factory ``(parent) -> Command subclass``

        Raises:
            InvalidCommandError: If the name is empty or reserved, or the
                target does not resolve to a Command subclass
            InvalidPathError: If a path target is not a file
            DuplicateCommandError: If the name (or an alias) is taken
        """
        if not name:
            raise InvalidCommandError("command name is required")
        if name in GLOBAL_KEYS:
            raise InvalidCommandError(f"command name '{name}' is reserved for a global flag")
        if name in self._commands:
            raise DuplicateCommandError(f"command '{name}' is already registered")

        command_cls = self._resolve(target)
        self._commands[name] = command_cls
        logger.debug(f"[{type(self).__name__}] add command `{name}` -> `{command_cls.__name__}`")

        for alias in _aliases_of(command_cls):
            if alias != name:
                self.alias(alias, name)

    def alias(self, alias: str, name: str) -> None:
        """Register ``alias`` as another name of the existing command ``name``.

        Raises:
            MissingCommandError: If ``name`` is not registered
        """
        if not alias:
            raise InvalidCommandError("alias command name is required")
        if name not in self._commands:
            raise MissingCommandError(f"{name} should be added first")
        if alias in GLOBAL_KEYS:
            raise InvalidCommandError(f"alias '{alias}' is reserved for a global flag")
        if alias in self._commands:
            raise DuplicateCommandError(f"command '{alias}' is already registered")

        logger.debug(f"[{type(self).__name__}] set `{alias}` as alias of `{name}`")
        self._commands[alias] = self._commands[name]

    def load_directory(self, path: str | os.PathLike) -> None:
        """Register every ``.py`` file directly inside ``path``, named by its stem.

        Subdirectories and files starting with ``_`` are ignored.

        Raises:
            InvalidPathError: If ``path`` is not an existing directory
        """
        path = Path(path)
        if not path.is_dir():
            raise InvalidPathError(f"{path} should exist and be a directory")

        names = []
        for file in sorted(path.iterdir()):
            if file.is_file() and file.suffix == COMMAND_SUFFIX and not file.name.startswith("_"):
                self.add(file.stem, file)
                names.append(file.stem)

        logger.debug(f"[{type(self).__name__}] loaded commands {names} from directory `{path}`")

    def _resolve(self, target: CommandTarget) -> type[Command]:
        if _is_command_class(target):
            return target

        if isinstance(target, (str, os.PathLike)):
            path = Path(target)
            if not path.is_file():
                raise InvalidPathError(f"{path} is not a file")
            logger.debug(f"[{type(self).__name__}] load command from `{path}`")
            target = _load_command_module(path)
            if _is_command_class(target):
                return target

        if callable(target) and not isinstance(target, type):
            resolved = target(self)
            if _is_command_class(resolved):
                return resolved

        raise InvalidCommandError(f"{target!r} should be a subclass of Command")

    # --- dispatch ---

    def start(self) -> None:
        """Entry point: dispatch, report any error and exit nonzero on failure."""
        configure_logging(self.config.debug)

        marker = self.config.completion_marker
        if marker in self.raw_argv:
            # Shells send `<marker> <prog> words...`; replace marker and prog with one flag
            index = self.raw_argv.index(marker)
            raw_argv = list(self.raw_argv)
            raw_argv[index:index + 2] = [f"--{self.config.completion_key}={','.join(self.raw_argv)}"]
            self.raw_argv = raw_argv

        try:
            asyncio.run(self.dispatch())
        except Exception as e:
            self.error_handler(e)

    def error_handler(self, error: BaseException) -> NoReturn:
        """Report an unhandled error in one line and exit with status 1."""
        console.print(f"⚠️  {type(error).__name__}: {error}", style="red", markup=False, highlight=False)
        console.print(
            "⚠️  Command Error, enable `COMMON_BIN_DEBUG=1` for detail",
            style="red",
            markup=False,
            highlight=False,
        )
        logger.debug(f"args {self.raw_argv}")
        logger.debug("Command failed", exc_info=error)
        sys.exit(1)

    async def dispatch(self) -> None:
        """Run this command, or delegate to the subcommand named by the first positional."""
        self.parser.global_options()

        parsed = await self._parse()
        positionals = parsed.get(POSITIONALS, [])
        command_name = positionals[0] if positionals else None

        if parsed.get("version") and self.version:
            click.echo(self.version)
            return

        if isinstance(command_name, str) and command_name in self._commands:
            command_cls = self._commands[command_name]
            raw_argv = list(self.raw_argv)
            raw_argv.remove(command_name)

            logger.debug(
                f"[{type(self).__name__}] dispatch to subcommand `{command_name}` "
                f"-> `{command_cls.__name__}` with {raw_argv}"
            )
            command = command_cls(
                raw_argv,
                prog=f"{self.prog} {command_name}",
                config=self.config,
                supervisor=self.supervisor,
            )
            await command.dispatch()
            return

        for name, command_cls in self._commands.items():
            self.parser.command(name, command_cls.description)

        if parsed.get("help"):
            self.show_help()
            return

        ctx = self.context

        if ctx.argv.get(self.config.completion_key):
            for candidate in self.parser.get_completions(self._completion_words()):
                click.echo(candidate)
            return

        logger.debug(f"[{type(self).__name__}] exec run command")
        try:
            await call_fn(self.run, ctx)
        except CommandError:
            raise
        except Exception as e:
            raise DispatchError(f"{type(self).__name__} failed: {e}") from e

    @property
    def context(self) -> ExecutionContext:
        """Execution context of this command, derived once."""
        if self._context is None:
            if self._parsed is None:
                self.parser.global_options()
                self._parsed = self.parser.parse(self.raw_argv)
            self._context = build_context(
                self._parsed,
                self.raw_argv,
                self.parser,
                self.parser_options,
                env=os.environ,
                cwd=Path.cwd(),
            )
        return self._context

    async def _parse(self) -> dict[str, Any]:
        self._parsed = self.parser.parse(self.raw_argv)
        return self._parsed

    def _completion_words(self) -> list[str]:
        prefix = f"--{self.config.completion_key}="
        return [token for token in self.raw_argv if not token.startswith(prefix)]


def _is_command_class(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, Command)


def _aliases_of(command_cls: type[Command]) -> list[str]:
    aliases = command_cls.aliases
    if isinstance(aliases, str):
        return [aliases]
    return list(aliases or ())


def _copy_parser_options(config: CommonBinConfig) -> ParserOptions:
    return replace(config.parser)


def _load_command_module(path: Path) -> Any:
    """Import a command file and return what it exports.

    The module's ``command`` attribute wins; otherwise the single Command
    subclass defined in the module is used.
    """
    digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:12]
    module_name = f"_commonbin_command_{path.stem}_{digest}"

    module = sys.modules.get(module_name)
    if module is None:
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise InvalidCommandError(f"cannot load command from {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            del sys.modules[module_name]
            raise

    exported = getattr(module, "command", None)
    if exported is not None:
        return exported

    defined = [
        obj
        for obj in vars(module).values()
        if _is_command_class(obj) and obj.__module__ == module.__name__
    ]
    if len(defined) != 1:
        raise InvalidCommandError(
            f"{path} should define exactly one Command subclass or export `command`"
        )
    return defined[0]
