"""fork: run a Python script in a supervised child interpreter.

Debug and exec flags extracted into the context (``ctx.exec_argv``) are not
interpreter options for Python. They are handed to the child through the
debug option variable (``COMMON_BIN_DEBUG_OPTION`` by default), so a child
built on commonbin derives the same flags into its own context.
"""

import shlex

from commonbin.core.command import Command
from commonbin.core.context import ExecutionContext


class ForkCommand(Command):
    description = "Run a Python script in a child interpreter"

    def __init__(self, raw_argv=None, **kwargs):
        super().__init__(raw_argv, **kwargs)
        self.usage = "Run SCRIPT with ARGS in a child Python interpreter."

    def run(self, ctx: ExecutionContext):
        if not ctx.positionals:
            self.show_help()
            return

        script, *args = (str(item) for item in ctx.positionals)
        env = dict(ctx.env)
        if ctx.has("exec_argv"):
            env[self.parser_options.debug_env] = shlex.join(ctx.exec_argv)
            self.logger.debug(f"Pass {ctx.exec_argv} to {script} via ${self.parser_options.debug_env}")

        yield self.supervisor.run_forked(script, args, cwd=ctx.cwd, env=env)
