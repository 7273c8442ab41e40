"""Run CPU-bound crypto calls off the event loop."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_in_worker(
    func: Callable[..., T],
    *args: Any,
    timeout: float | None = None,
    **kwargs: Any,
) -> T:
    """Run ``func(*args, **kwargs)`` on a worker thread.

    Key derivation and OpenPGP operations are slow on purpose; awaiting this
    keeps the event loop responsive. The operation itself cannot be cancelled:
    on timeout the caller stops waiting and TimeoutError is raised while the
    worker thread runs to completion.

    Args:
        func: Callable to run
        *args: Positional arguments for func
        timeout: Seconds to wait before giving up, or None to wait forever
        **kwargs: Keyword arguments for func

    Returns:
        The callable's return value

    """
    call = functools.partial(func, *args, **kwargs)
    return await asyncio.wait_for(asyncio.to_thread(call), timeout=timeout)
