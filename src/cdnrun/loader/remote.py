"""Remote module fetcher: timeout-bounded GET against the CDN."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

import aiohttp

from cdnrun.constants import Constants
from cdnrun.errors import ModuleFetchStatusError
from cdnrun.common.http_client import get_text
from cdnrun.common.logging_utils import extra_context, safe_url

from .models import FetchResult, ModuleRequest

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Awaitable[aiohttp.ClientSession]]

NOT_FOUND_STATUSES = (404,)


class RemoteFetcher:
    """Fetches module source over HTTP with strict status validation."""

    def __init__(self, session_factory: SessionFactory, timeout: float = Constants.MODULE_FETCH_TIMEOUT):
        """Initialize the fetcher.

        Args:
            session_factory: Coroutine function returning the shared session.
            timeout: Deadline in seconds for each fetch.
        """
        self._session_factory = session_factory
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def try_fetch(self, request: ModuleRequest) -> FetchResult:
        """Fetch ``request.address``; a 404 yields a not-found result.

        Raises:
            FetchTimeoutError: The deadline elapsed first.
            ModuleFetchStatusError: Any other non-200 status.
        """
        session = await self._session_factory()
        status, text = await get_text(session, request.address, context="module", timeout=self._timeout)
        if status == 200:
            return FetchResult(address=request.address, source=text, status=status)
        if status in NOT_FOUND_STATUSES:
            return FetchResult.not_found(request.address, status)
        logger.warning(
            "Module fetch failed",
            extra=extra_context(
                event="http_response",
                component="remote_fetcher",
                outcome="non_200",
                status_code=status,
                target=safe_url(request.address),
            ),
        )
        raise ModuleFetchStatusError(request.address, status)

    async def fetch(self, request: ModuleRequest) -> str:
        """Strict fetch: every non-200 status is a hard failure."""
        result = await self.try_fetch(request)
        if not result.found:
            raise ModuleFetchStatusError(request.address, result.status or 404)
        return result.source  # type: ignore[return-value]


class RemoteLoaderPlugin:
    """Loader plugin adapter for modules living on the CDN."""

    def __init__(self, fetcher: RemoteFetcher):
        self._fetcher = fetcher

    async def fetch(self, request: ModuleRequest, next_fetch=None) -> str:
        return await self._fetcher.fetch(request)
