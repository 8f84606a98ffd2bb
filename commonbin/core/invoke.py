"""Normalize the call shapes a command's run behavior may take.

``run`` may be a plain function, a coroutine function (or any function that
returns an awaitable), or a generator function that yields awaitables and
receives their results back, co-routine style:

    def run(self, ctx):
        yield self.supervisor.run_spawned("make", ["build"])
        first, second = yield [fetch("a"), fetch("b")]
        return first + second

All three are awaited to a single value or a raised exception.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Generator
from typing import Any


async def call_fn(fn: Callable[..., Any] | None, *args: Any, **kwargs: Any) -> Any:
    """Call ``fn`` and wait for its result whatever its shape.

    Returns None when ``fn`` is not callable.
    """
    if not callable(fn):
        return None
    if inspect.isgeneratorfunction(fn):
        return await _drive(fn(*args, **kwargs))
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


async def _resolve(value: Any) -> Any:
    if inspect.isgenerator(value):
        return await _drive(value)
    if inspect.isawaitable(value):
        return await value
    if isinstance(value, (list, tuple)) and value and all(
        inspect.isawaitable(item) or inspect.isgenerator(item) for item in value
    ):
        return list(await asyncio.gather(*(_resolve(item) for item in value)))
    return value


async def _drive(generator: Generator[Any, Any, Any]) -> Any:
    """Run a generator to completion, resolving everything it yields."""
    send_value: Any = None
    error: BaseException | None = None

    while True:
        try:
            if error is not None:
                yielded = generator.throw(error)
            else:
                yielded = generator.send(send_value)
        except StopIteration as stop:
            return stop.value

        try:
            send_value = await _resolve(yielded)
            error = None
        except Exception as e:
            send_value = None
            error = e
