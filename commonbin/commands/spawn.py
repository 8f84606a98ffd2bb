"""spawn: run an executable under supervision."""

from commonbin.core.command import Command
from commonbin.core.context import ExecutionContext


class SpawnCommand(Command):
    description = "Run an executable and wait for it to exit"
    aliases = ("exec",)

    def __init__(self, raw_argv=None, **kwargs):
        super().__init__(raw_argv, **kwargs)
        self.usage = "Run EXECUTABLE with ARGS; put ARGS after -- to keep their flags."
        self.options = {
            "cwd": {"type": "string", "description": "Working directory of the child"},
        }

    async def run(self, ctx: ExecutionContext) -> None:
        if not ctx.positionals:
            self.show_help()
            return

        executable, *args = (str(item) for item in ctx.positionals)
        await self.supervisor.run_spawned(executable, args, cwd=ctx.argv.get("cwd") or ctx.cwd)
        self.logger.debug(f"{executable} exited cleanly")
