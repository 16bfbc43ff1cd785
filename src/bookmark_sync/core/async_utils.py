"""Run the blocking sync engine from async MCP handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    A full sync can take minutes; running it on a worker thread keeps the
    MCP server responsive while it pages through the collection.

    Example:
        engine = SyncEngine(client, settings)
        report = await run_sync(engine.run, force=True)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
