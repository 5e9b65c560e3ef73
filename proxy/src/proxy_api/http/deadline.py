"""Run blocking service calls from async handlers under a request deadline."""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, TypeVar

from starlette.concurrency import run_in_threadpool

from proxy_api.errors import ProxyError, QueryTimeoutError
from proxy_api.http.errors import from_domain_error

T = TypeVar("T")


async def run_with_deadline(fn: Callable[..., T], *args: Any, timeout: float, **kwargs: Any) -> T:
    """Run ``fn`` in the threadpool; raise :class:`QueryTimeoutError` past ``timeout`` seconds.

    The worker thread is not interrupted. Database statements carry their own
    timeout so the abandoned call ends on its own.
    """

    try:
        return await asyncio.wait_for(
            run_in_threadpool(functools.partial(fn, *args, **kwargs)),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise QueryTimeoutError("Query timed out") from exc


async def call_service(fn: Callable[..., T], *args: Any, timeout: float, **kwargs: Any) -> T:
    """Like :func:`run_with_deadline`, translating domain errors into HTTP errors."""

    try:
        return await run_with_deadline(fn, *args, timeout=timeout, **kwargs)
    except ProxyError as exc:
        raise from_domain_error(exc) from exc


__all__ = ["call_service", "run_with_deadline"]
