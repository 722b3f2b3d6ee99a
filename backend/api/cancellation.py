"""Tie a blocking service call to the lifetime of the inbound request.

Fan-out services take a ``threading.Event`` and return whatever finished
once it is set. Handlers run the call on the threadpool and set the event
when the client goes away, so abandoned requests stop holding workers.
"""

import asyncio
import logging
import threading
from typing import Callable, TypeVar

from fastapi import Request
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.1


async def run_cancellable(
    request: Request,
    fn: Callable[[], T],
    cancel_event: threading.Event,
    poll_seconds: float = DISCONNECT_POLL_SECONDS,
) -> T:
    """Run ``fn()`` on the threadpool, watching for client disconnect.

    ``cancel_event`` is set as soon as the client disconnects; ``fn`` closes
    over it and hands it to the fan-out, which then returns early. The call
    is always awaited to completion so its result (partial or not) and any
    exception surface here.
    """
    task = asyncio.ensure_future(run_in_threadpool(fn))
    while not task.done():
        await asyncio.wait({task}, timeout=poll_seconds)
        if task.done() or cancel_event.is_set():
            continue
        if await request.is_disconnected():
            logger.info("Client disconnected from %s; cancelling fan-out", request.url.path)
            cancel_event.set()
    return await task
