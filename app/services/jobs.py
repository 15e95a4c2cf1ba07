"""Polling helper for long-running AWS jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class JobTimeoutError(RuntimeError):
    """Raised when a long-running job exceeds its deadline."""


async def wait_for_job(
    fetch_status: Callable[[], Mapping[str, Any]],
    read_state: Callable[[Mapping[str, Any]], str],
    *,
    pending_states: frozenset[str],
    poll_interval: float,
    timeout: float,
    description: str,
) -> Mapping[str, Any]:
    """Poll ``fetch_status`` until the job leaves ``pending_states``.

    ``fetch_status`` is a blocking boto3 call; it runs in the threadpool and
    the coroutine sleeps between polls so other requests keep being served.
    Returns the final status payload, whatever terminal state it reports.
    """

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    attempt = 0
    while True:
        attempt += 1
        payload = await run_in_threadpool(fetch_status)
        state = read_state(payload)
        if state not in pending_states:
            logger.debug("%s finished state=%s polls=%d", description, state, attempt)
            return payload
        if loop.time() + poll_interval > deadline:
            raise JobTimeoutError(
                f"{description} did not finish within {timeout:.0f}s (last state {state})."
            )
        await asyncio.sleep(poll_interval)


__all__ = ["JobTimeoutError", "wait_for_job"]
