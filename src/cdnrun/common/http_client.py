"""Shared async HTTP helpers used by the metadata loader and remote fetcher.

Encapsulates the timeout race and DEBUG tracing so callers only deal with a
``(status, text)`` pair. Redirects are always followed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

import aiohttp

from cdnrun.constants import Constants
from cdnrun.errors import FetchTimeoutError
from cdnrun.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def create_session(timeout: Optional[float] = None) -> aiohttp.ClientSession:
    """Create a client session with the project's default headers.

    Must be called from within a running event loop.
    """
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout or Constants.REQUEST_TIMEOUT),
        headers={"User-Agent": Constants.USER_AGENT},
    )


async def _read(session: aiohttp.ClientSession, url: str) -> Tuple[int, str]:
    async with session.get(url, allow_redirects=True) as response:
        return response.status, await response.text()


async def get_text(
    session: aiohttp.ClientSession,
    url: str,
    *,
    context: str,
    timeout: Optional[float] = None,
) -> Tuple[int, str]:
    """Perform a GET raced against ``timeout`` and return ``(status, text)``.

    If the deadline passes first the in-flight request is cancelled, so a late
    response can never settle the call a second time.

    Raises:
        FetchTimeoutError: The deadline elapsed before a response arrived.
        aiohttp.ClientError: Transport-level failures propagate unchanged.
    """
    effective_timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            status, text = await asyncio.wait_for(_read(session, url), effective_timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "%s request timed out after %s seconds: %s",
                context,
                effective_timeout,
                safe_target,
            )
            raise FetchTimeoutError(url, effective_timeout) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if status == 200 else "non_200",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return status, text
