# Author: easyble contributors

"""
Single completion path for BLE operations.

Every BleClient operation is a coroutine producing a BLEResult. Callers may
simply await it, or additionally pass a completion function that receives
the very same result.
"""

import asyncio
import inspect

from logging_setup import get_logger

logger = get_logger(__name__)


async def call_callback(operation, callback=None):
    """
    Await operation once and hand its result to callback, if any.

    Args:
        operation: Awaitable producing a BLEResult
        callback: Optional function (plain or async) taking the BLEResult

    Returns:
        The BLEResult, whether or not a callback was given.
    """
    result = await operation
    if callback is not None:
        outcome = callback(result)
        if inspect.isawaitable(outcome):
            await outcome
    return result


def track_task(outcome, tasks, description):
    """
    Run an awaitable returned by a push handler as a task held in tasks.

    The task is dropped from tasks when it finishes; a failure is logged.
    """
    task = asyncio.ensure_future(outcome)
    tasks.add(task)

    def done(finished):
        tasks.discard(finished)
        if finished.cancelled():
            return
        error = finished.exception()
        if error is not None:
            logger.error("[BLE] %s handler failed: %r", description, error, exc_info=error)

    task.add_done_callback(done)
    return task
