"""CLI entry point for the bundled ``commonbin`` executable.

Commands are loaded from the ``commonbin/commands`` directory:
- commonbin spawn: Run an executable under supervision (alias: exec)
- commonbin fork: Run a Python script in a supervised child interpreter
- commonbin context: Print the derived execution context
"""

from __future__ import annotations

from pathlib import Path

from commonbin import __version__
from commonbin.core.command import Command

COMMANDS_DIR = Path(__file__).parent / "commands"


class MainCommand(Command):
    name = "commonbin"
    version = __version__

    def __init__(self, raw_argv=None, **kwargs):
        super().__init__(raw_argv, **kwargs)
        self.usage = "Run external tools as supervised child processes."
        self.load_directory(COMMANDS_DIR)


def main() -> None:
    MainCommand().start()


if __name__ == "__main__":
    main()
