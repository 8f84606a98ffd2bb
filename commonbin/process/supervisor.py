"""Supervised child processes for commands.

Commands launch external tools through a ProcessSupervisor. Every child is
tracked from launch until it reports exit, and children still running when the
parent shuts down are signalled so none are left orphaned.

Termination handling is installed lazily, the first time a child is launched:
- SIGINT/SIGQUIT/SIGTERM: remember the signal, restore the previous handlers
  and exit the parent.
- atexit: send the remembered signal (SIGTERM on a normal exit) to every child
  still tracked. Runs once; later exits deliver nothing.

Children are therefore only killed during the parent's own shutdown.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import os
import shlex
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from commonbin.core.errors import ChildProcessFailedError

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = tuple(
    sig
    for sig in (
        signal.SIGINT,
        getattr(signal, "SIGQUIT", None),
        signal.SIGTERM,
    )
    if sig is not None
)


class ProcessSupervisor:
    """Track child processes and forward termination to them.

    One instance is created per program run and shared by every command of
    the dispatch chain.
    """

    def __init__(self) -> None:
        self._children: set[asyncio.subprocess.Process] = set()
        self._hooked = False
        self._reaped = False
        self._signal: int | None = None
        self._previous_handlers: dict[int, Any] = {}

    @property
    def children(self) -> frozenset[asyncio.subprocess.Process]:
        """Handles of children that have not reported exit yet."""
        return frozenset(self._children)

    @property
    def hooked(self) -> bool:
        return self._hooked

    async def run_forked(
        self,
        module_path: str | Path,
        args: Sequence[str] = (),
        *,
        exec_argv: Sequence[str] = (),
        **options: Any,
    ) -> None:
        """Run a Python script in a child interpreter.

        Args:
            module_path: Script to execute
            args: Arguments passed to the script
            exec_argv: Interpreter flags placed before the script path
            **options: cwd, env, stdin, stdout, stderr (streams inherited by default)

        Raises:
            ChildProcessFailedError: If the child exits with a nonzero code
        """
        args = [str(arg) for arg in args]
        cmd = [sys.executable, *exec_argv, str(module_path), *args]
        logger.debug(f"Run fork `{shlex.join(cmd)}`")

        proc = await asyncio.create_subprocess_exec(*cmd, **options)
        self._track(proc)

        code = await self._wait(proc)
        if code != 0:
            raise ChildProcessFailedError(
                f"{module_path} {' '.join(args)} exit with code {code}", code=code
            )

    async def run_spawned(
        self,
        command: str,
        args: Sequence[str] = (),
        **options: Any,
    ) -> None:
        """Run an executable.

        Args:
            command: Executable name or path (looked up on PATH)
            args: Arguments passed to the executable
            **options: cwd, env, stdin, stdout, stderr (streams inherited by default)

        Raises:
            ChildProcessFailedError: If the child exits with a nonzero code,
                or with ``code=None`` when it could not be started at all
        """
        args = [str(arg) for arg in args]
        logger.debug(f"Run spawn `{shlex.join([command, *args])}`")

        try:
            proc = await asyncio.create_subprocess_exec(command, *args, **options)
        except OSError as e:
            raise ChildProcessFailedError(
                f"spawn {command} {' '.join(args)} fail: {e}", code=None
            ) from e
        self._track(proc)

        code = await self._wait(proc)
        if code != 0:
            raise ChildProcessFailedError(
                f"spawn {command} {' '.join(args)} fail, exit code: {code}", code=code
            )

    async def _wait(self, proc: asyncio.subprocess.Process) -> int:
        # A cancelled wait (parent shutting down) leaves the child tracked for _on_exit
        code = await proc.wait()
        self._children.discard(proc)
        return code

    def _track(self, proc: asyncio.subprocess.Process) -> None:
        self._children.add(proc)
        if not self._hooked:
            self._install_hooks()

    def _install_hooks(self) -> None:
        self._hooked = True
        for sig in TERMINATION_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._on_signal)
        atexit.register(self._on_exit)

    def _on_signal(self, signum: int, frame: Any) -> None:
        self._signal = signum
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
        logger.debug(f"Received {signal.Signals(signum).name}, exiting")
        raise SystemExit(0)

    def _on_exit(self) -> None:
        if self._reaped:
            return
        self._reaped = True

        signum = self._signal or signal.SIGTERM
        for child in list(self._children):
            logger.debug(f"kill child {child.pid} with {signal.Signals(signum).name}")
            try:
                os.kill(child.pid, signum)
            except ProcessLookupError:
                logger.debug(f"child {child.pid} already gone")
        self._children.clear()
