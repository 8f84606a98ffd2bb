"""context: print the execution context derived from the arguments."""

import click
import yaml

from commonbin.core.command import Command
from commonbin.core.context import ExecutionContext


class ContextCommand(Command):
    description = "Print the derived execution context as YAML"

    def __init__(self, raw_argv=None, **kwargs):
        super().__init__(raw_argv, **kwargs)
        self.options = {
            "show-env": {"type": bool, "description": "Include the environment snapshot"},
        }

    def run(self, ctx: ExecutionContext) -> None:
        data = ctx.model_dump(mode="json", exclude_unset=True)
        if not ctx.argv.get("show-env"):
            data.pop("env", None)
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)
